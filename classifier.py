from typing import Optional

from entities import Outcome


def classify(outstanding: Optional[int], yellow_card: int, red_card: int) -> Outcome:
    """Maps an outstanding-defect count onto an outcome.

    ``None`` means the report could not be read or no source file was in
    scope. The thresholds are trusted as given (yellow_card <= red_card).
    """
    if outstanding is None:
        return Outcome.SKIP
    if outstanding == 0:
        return Outcome.SUCCESS
    if outstanding <= yellow_card:
        return Outcome.GREEN_CARD
    if outstanding <= red_card:
        return Outcome.YELLOW_CARD
    return Outcome.RED_CARD
