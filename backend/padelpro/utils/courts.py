"""
Court labels for a club.

Clubs name their courts ("Central", "2", "Cristal"); matches only store the
1-based court number. A court_names value may arrive as a comma-separated
string or a list.
"""
from typing import List, Optional, Union

WAITING_LABEL = "Waiting"


def parse_court_names(court_names: Optional[Union[str, List[str]]]) -> List[str]:
    """
    Normalize court_names to a list of non-empty strings.

    - None or "" -> []
    - "Central, 2 ,Cristal" -> ["Central", "2", "Cristal"]
    - list -> each item coerced with str(x).strip(), empties dropped
    """
    if court_names is None:
        return []
    if isinstance(court_names, str):
        return [x.strip() for x in court_names.split(",") if x.strip()]
    if isinstance(court_names, list):
        return [str(x).strip() for x in court_names if str(x).strip()]
    return []


def court_label_for_index(court_names: Optional[Union[str, List[str]]], court_number: Optional[int]) -> str:
    """Display label for a physical court; WAITING_LABEL when no court is assigned."""
    if court_number is None:
        return WAITING_LABEL
    labels = parse_court_names(court_names)
    if 1 <= court_number <= len(labels):
        return labels[court_number - 1]
    return str(court_number)
