from .user import User
from .team import Team, TeamMember, TeamRole, BillingProvider
from .invitation import TeamInvitation, InvitationStatus
from .usage_event import UsageEvent
