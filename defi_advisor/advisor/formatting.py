NOT_AVAILABLE = "N/A"


def format_usd(amount: float | None) -> str:
    if amount is None:
        return NOT_AVAILABLE
    return f"${amount:,.2f}"


def format_pct(value: float | None, decimals: int = 2) -> str:
    if value is None:
        return NOT_AVAILABLE
    return f"{value:.{decimals}f}%"


def format_value(value: object, suffix: str = "") -> str:
    if value is None or value == "":
        return NOT_AVAILABLE
    return f"{value}{suffix}"
