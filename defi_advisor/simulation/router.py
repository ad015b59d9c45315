from fastapi import APIRouter

from defi_advisor.dependencies import SimulationServiceDep
from defi_advisor.simulation.schemas import SimulationRequest, SimulationResponse

router = APIRouter()


@router.post("/simulate", response_model=SimulationResponse)
async def simulate(body: SimulationRequest, service: SimulationServiceDep) -> SimulationResponse:
    data = await service.simulate(body.type, body.params)
    return SimulationResponse(data=data)
