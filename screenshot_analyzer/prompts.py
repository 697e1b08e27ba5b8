from typing import Optional

from .config import read_prompt_file

ACTIVITY_FIELDS = (
    "activity name",
    "distance",
    "pace",
    "moving time",
    "elevation gain",
    "calories",
    "heart rate",
    "date",
    "location",
)

EXTRACTION_PROMPT = (
    "Extract all activity data from this Strava screenshot, including: "
    + ", ".join(ACTIVITY_FIELDS[:-1])
    + f", and {ACTIVITY_FIELDS[-1]} (if available). "
    "Return result in JSON format with exact values as shown in the image, preserving all units."
)


def resolve_prompt(prompt_file: Optional[str]) -> str:
    """PROMPT_FILE contents when readable and non-empty, else the built-in prompt."""
    return read_prompt_file(prompt_file) or EXTRACTION_PROMPT
