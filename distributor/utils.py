import datetime

from distributor.models import Timestamp


def yes_or_no(question: str) -> bool:
    """
    Require y or n (case insenstive) as answer to `question`.
    Defaults to N with no response
    """
    while "the answer is invalid":
        reply = input(f"{question} [y/N]: ")
        if not reply:
            return False
        reply = str(reply).lower().strip()
        if reply[:1] == "y":
            return True
        if reply[:1] == "n":
            return False
    return False


def format_timestamp(ts: Timestamp) -> str:
    """0 is the 'nothing further scheduled' sentinel, not the epoch"""
    if ts == 0:
        return "none"
    return datetime.datetime.fromtimestamp(ts, tz=datetime.timezone.utc).isoformat()
