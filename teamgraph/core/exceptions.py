"""
Domain errors.

Every error carries a stable ``code`` so callers can tell rejections apart
(an expired invite, a user already on a team, a circular team structure)
without parsing messages, and the HTTP status the API layer maps it to.
"""


class TeamGraphError(Exception):
    """Base class for all domain errors."""

    code = "error"
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class CycleDetected(TeamGraphError):
    """Team hierarchy is cyclic or deeper than the configured bound."""

    code = "cycle_detected"
    status_code = 500
    default_message = "Team hierarchy is corrupt: cycle or depth limit reached"


class AntiHijackViolation(TeamGraphError):
    code = "anti_hijack_violation"
    status_code = 409
    default_message = "This invitation would create a circular team structure"


class InvitationNotFound(TeamGraphError):
    code = "invitation_not_found"
    status_code = 404
    default_message = "Invitation not found"


class InvitationExpired(TeamGraphError):
    code = "invitation_expired"
    status_code = 410
    default_message = "This invitation has expired"


class InvitationAlreadyProcessed(TeamGraphError):
    code = "invitation_already_processed"
    status_code = 409
    default_message = "This invitation has already been processed"


class EmailMismatch(TeamGraphError):
    code = "email_mismatch"
    status_code = 403
    default_message = "This invitation was sent to a different email address"


class DuplicatePending(TeamGraphError):
    code = "duplicate_pending"
    status_code = 409
    default_message = "User already has a pending invitation to this team"


class AlreadyTeamMember(TeamGraphError):
    code = "already_team_member"
    status_code = 409
    default_message = "User is already on this team"


class PermissionDenied(TeamGraphError):
    code = "permission_denied"
    status_code = 403
    default_message = "Only the team owner or an admin can do this"


class TeamNotFound(TeamGraphError):
    code = "team_not_found"
    status_code = 404
    default_message = "Team not found"


class MemberNotFound(TeamGraphError):
    code = "member_not_found"
    status_code = 404
    default_message = "Team member not found"


class UnknownProperty(TeamGraphError):
    code = "unknown_property"
    status_code = 400
    default_message = "Unknown policy property"
