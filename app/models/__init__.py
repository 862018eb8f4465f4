from .user import User
from .session import UserSession
from .team import Team, Player
from .venue import Venue
from .tournament import Tournament, TournamentTeam, PointsSystem
from .match import Match, MatchStatus, COMPLETED_STATUSES, LIVE_STATUSES
from .match_event import MatchEvent, EventType
from .lineup import Formation, Lineup, LineupPlayer
from .standing import Standing
from .commentary import CommentaryEntry

__all__ = [
    "User",
    "UserSession",
    "Team",
    "Player",
    "Venue",
    "Tournament",
    "TournamentTeam",
    "PointsSystem",
    "Match",
    "MatchStatus",
    "COMPLETED_STATUSES",
    "LIVE_STATUSES",
    "MatchEvent",
    "EventType",
    "Formation",
    "Lineup",
    "LineupPlayer",
    "Standing",
    "CommentaryEntry",
]
