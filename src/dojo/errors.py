"""Exception types raised by the Dojo registry."""


class DojoError(Exception):
    """Base class for all Dojo errors."""


class AuthError(DojoError):
    """The presented token is missing, unknown, or belongs to another team."""


class AddressError(DojoError):
    """The registered address is missing or cannot be parsed."""


class PollError(DojoError):
    """A health poll failed: network error, bad status, unreadable body or timeout."""


class NoSuchTeam(DojoError):
    """The team has no record in the registry."""

    def __init__(self, team: int):
        super().__init__(f"no server registered for team {team}")
        self.team = team
