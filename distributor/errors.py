class ClaimError(Exception):
    """Base class for any reason a claim is refused"""

    pass


class Ended(ClaimError):
    """Raise if a claim arrives after the campaign end time"""

    pass


class IndexOutOfRange(ClaimError):
    """Raise if the claim index is outside of the campaign bitmap"""

    pass


class AlreadyClaimed(ClaimError):
    """Raise if the claim index has already been consumed"""

    pass


class AllocationExceeded(ClaimError):
    """Raise if the claim would push total claimed above the allocation"""

    pass


class InvalidProof(ClaimError):
    """Raise if the merkle proof does not reproduce the campaign root"""

    pass


class LockDurationOutOfRange(ClaimError):
    """Raise if a lock claim asks for a duration outside the configured bounds"""

    pass


class VestingError(Exception):
    """Base class for vesting refusals. These are informational, not faults"""

    pass


class NotStarted(VestingError):
    """Raise if a release is attempted before the position start time"""

    pass


class Completed(VestingError):
    """Raise if the position has already released its full amount"""

    pass


class NothingToClaim(VestingError):
    """Raise if nothing new has unlocked since the last release"""

    pass


class AlreadyHasPosition(VestingError):
    """Raise if the beneficiary already has a position that is not fully released"""

    pass


class PositionNotDrained(VestingError):
    """Raise if a position is closed while tokens are still locked"""

    pass


class ArithmeticOverflowError(ArithmeticError):
    """Raise if an amount leaves the fixed-width integer range it is stored in"""

    pass


class InsufficientBalanceError(Exception):
    """Raise if a ledger account holds less than the amount withdrawn"""

    pass


class AssetAlreadyConsumedError(Exception):
    """Raise if an Asset is deposited or burned twice"""

    pass


class MissingRecordException(Exception):
    """Raise if a campaign, schedule or position is not in the DB"""

    pass


class ScheduleImmutableError(Exception):
    """Raise if a stored schedule would be replaced by a different one"""

    pass


class BadConfigException(Exception):
    """Raise if a config or claims file fails validation"""

    pass


class MissingEnvironmentVariableException(Exception):
    """Raise if a required environment variable is unset and has no default"""

    pass
