from fastapi import APIRouter

from defi_advisor.dependencies import WalletServiceDep
from defi_advisor.wallet.schemas import WalletResponse

router = APIRouter()


@router.get("/wallet/{address}", response_model=WalletResponse)
async def get_wallet(address: str, service: WalletServiceDep) -> WalletResponse:
    return WalletResponse(data=await service.get_wallet(address))
