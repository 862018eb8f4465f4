"""
League table calculation from completed matches.

The table is a pure fold over the completed matches of a tournament. The
``standings`` table only caches the result and is rebuilt wholesale.
"""

import logging
from datetime import datetime, UTC
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import delete, func
from sqlmodel import Session, select

from ..config import FORM_LENGTH, SHOOTOUT_DECIDES_RESULT
from ..models.match import Match, COMPLETED_STATUSES
from ..models.standing import Standing
from ..models.team import Team
from ..models.tournament import PointsSystem, Tournament, TournamentTeam

logger = logging.getLogger(__name__)


class TeamStanding:
    """Represents a team's running record while folding matches."""

    def __init__(self, team_id: int):
        self.team_id = team_id
        self.played = 0
        self.won = 0
        self.drawn = 0
        self.lost = 0
        self.goals_for = 0
        self.goals_against = 0
        self.points = 0
        self.results = []  # (sort key, "W"/"D"/"L")

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against

    def form(self, length: int) -> str:
        recent = sorted(self.results, key=lambda r: r[0], reverse=True)[:length]
        return "".join(result for _, result in recent)

    def record(self, goals_for: int, goals_against: int, result: str, points: int, order_key) -> None:
        self.played += 1
        self.goals_for += goals_for
        self.goals_against += goals_against
        self.points += points
        if result == "W":
            self.won += 1
        elif result == "L":
            self.lost += 1
        else:
            self.drawn += 1
        self.results.append((order_key, result))

    def to_dict(self, form_length: int = FORM_LENGTH) -> dict:
        """Convert to dictionary for API response."""
        return {
            "team_id": self.team_id,
            "played": self.played,
            "won": self.won,
            "drawn": self.drawn,
            "lost": self.lost,
            "goals_for": self.goals_for,
            "goals_against": self.goals_against,
            "goal_difference": self.goal_difference,
            "points": self.points,
            "form": self.form(form_length),
        }

    def __repr__(self):
        return f"{self.team_id}: {self.points}pts (GD: {self.goal_difference})"


def _naive(value: datetime) -> datetime:
    return value.replace(tzinfo=None) if value.tzinfo else value


def match_outcome(match: Match, shootout_decides: bool = SHOOTOUT_DECIDES_RESULT) -> str:
    """Return "home_win", "away_win" or "draw" from the stored score."""
    home_score = match.home_score or 0
    away_score = match.away_score or 0
    if home_score > away_score:
        return "home_win"
    if home_score < away_score:
        return "away_win"

    if shootout_decides and match.home_penalty_score is not None and match.away_penalty_score is not None:
        if match.home_penalty_score > match.away_penalty_score:
            return "home_win"
        if match.home_penalty_score < match.away_penalty_score:
            return "away_win"
    return "draw"


def standing_sort_key(points: int, goal_difference: int, goals_for: int):
    """Display order: points, then goal difference, then goals scored."""
    return (-points, -goal_difference, -goals_for)


def aggregate_standings(
    team_ids: Sequence[int],
    matches: Iterable[Match],
    points_system: PointsSystem,
    shootout_decides: bool = SHOOTOUT_DECIDES_RESULT,
    form_length: int = FORM_LENGTH,
) -> List[dict]:
    """
    Fold completed matches into sorted standing rows.

    Args:
        team_ids: Teams registered in the tournament, in registration order
        matches: Matches of the tournament (non-completed ones are ignored)
        points_system: Points for a win, draw and loss
        shootout_decides: Award level matches to the shootout winner
        form_length: Number of results kept in the form string

    Returns:
        List of standing dicts sorted for display, each with a 1-based position.
        The result does not depend on the order of ``matches``.
    """
    teams_stats: Dict[int, TeamStanding] = {team_id: TeamStanding(team_id) for team_id in team_ids}

    for match in matches:
        if match.status not in COMPLETED_STATUSES:
            continue

        home = teams_stats.get(match.home_team_id)
        away = teams_stats.get(match.away_team_id)
        if home is None or away is None:
            logger.warning("Skipping match %s: team not registered in tournament", match.id)
            continue

        home_score = match.home_score or 0
        away_score = match.away_score or 0
        order_key = (_naive(match.scheduled_datetime), match.id or 0)

        outcome = match_outcome(match, shootout_decides)
        if outcome == "home_win":
            home.record(home_score, away_score, "W", points_system.win, order_key)
            away.record(away_score, home_score, "L", points_system.loss, order_key)
        elif outcome == "away_win":
            home.record(home_score, away_score, "L", points_system.loss, order_key)
            away.record(away_score, home_score, "W", points_system.win, order_key)
        else:
            home.record(home_score, away_score, "D", points_system.draw, order_key)
            away.record(away_score, home_score, "D", points_system.draw, order_key)

    # Stable sort keeps registration order for full ties
    sorted_standings = sorted(
        teams_stats.values(),
        key=lambda s: standing_sort_key(s.points, s.goal_difference, s.goals_for),
    )

    rows = []
    for i, standing in enumerate(sorted_standings):
        row = standing.to_dict(form_length)
        row["position"] = i + 1
        rows.append(row)
    return rows


def _registered_team_ids(db: Session, tournament_id: int) -> List[int]:
    statement = (
        select(TournamentTeam.team_id)
        .where(TournamentTeam.tournament_id == tournament_id)
        .order_by(TournamentTeam.id)
    )
    return list(db.exec(statement).all())


def rebuild_standings(db: Session, tournament_id: int) -> List[Standing]:
    """
    Replace the cached standing rows of a tournament inside the caller's
    transaction. Nothing is committed here: the caller commits the rebuild
    together with the match or ledger write that triggered it.
    """
    tournament = db.get(Tournament, tournament_id)
    if not tournament:
        return []

    team_ids = _registered_team_ids(db, tournament_id)
    matches = db.exec(
        select(Match).where(
            Match.tournament_id == tournament_id,
            Match.status.in_(sorted(COMPLETED_STATUSES))
        )
    ).all()

    rows = aggregate_standings(team_ids, matches, tournament.points_system)

    db.exec(delete(Standing).where(Standing.tournament_id == tournament_id))
    now = datetime.now(UTC)
    standings = []
    for row in rows:
        standing = Standing(
            tournament_id=tournament_id,
            team_id=row["team_id"],
            position=row["position"],
            matches_played=row["played"],
            wins=row["won"],
            draws=row["drawn"],
            losses=row["lost"],
            goals_for=row["goals_for"],
            goals_against=row["goals_against"],
            goal_difference=row["goal_difference"],
            points=row["points"],
            form=row["form"],
            updated_at=now,
        )
        db.add(standing)
        standings.append(standing)

    logger.info(
        "Rebuilt standings for tournament %s: %d teams, %d completed matches",
        tournament_id, len(rows), len(matches)
    )
    return standings


def recompute_standings(db: Session, tournament_id: int) -> List[Standing]:
    """
    Rebuild the cached standings of a tournament from its completed matches.

    Reads and writes happen in one transaction, so a concurrent run sees either
    the old or the new rows. Running it twice yields identical rows.
    """
    try:
        standings = rebuild_standings(db, tournament_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return standings


def _cache_is_stale(db: Session, tournament_id: int, standings: Sequence[Standing], team_count: int) -> bool:
    if len(standings) != team_count:
        return True
    if not standings:
        return False

    last_match_update = db.exec(
        select(func.max(Match.updated_at)).where(
            Match.tournament_id == tournament_id,
            Match.status.in_(sorted(COMPLETED_STATUSES))
        )
    ).one()
    if last_match_update is None:
        return False
    built_at = min(_naive(s.updated_at) for s in standings)
    return _naive(last_match_update) > built_at


def get_standings(db: Session, tournament_id: int) -> List[dict]:
    """
    Get the league table of a tournament, sorted for display.

    Serves the cached rows and rebuilds them when the cache is missing,
    incomplete, or older than the last update of a completed match.
    Unknown tournaments yield an empty list.
    """
    tournament = db.get(Tournament, tournament_id)
    if not tournament:
        return []

    standings = db.exec(select(Standing).where(Standing.tournament_id == tournament_id)).all()
    team_ids = _registered_team_ids(db, tournament_id)
    if _cache_is_stale(db, tournament_id, standings, len(team_ids)):
        standings = recompute_standings(db, tournament_id)

    teams = {t.id: t for t in db.exec(select(Team).where(Team.id.in_(team_ids))).all()}
    registration_order = {team_id: i for i, team_id in enumerate(team_ids)}

    standings = sorted(
        standings,
        key=lambda s: (
            standing_sort_key(s.points, s.goal_difference, s.goals_for),
            registration_order.get(s.team_id, len(team_ids))
        )
    )

    result = []
    for i, s in enumerate(standings):
        team: Optional[Team] = teams.get(s.team_id)
        result.append({
            "position": i + 1,
            "team_id": s.team_id,
            "team_name": team.name if team else "Unknown Team",
            "short_name": (team.short_name or team.name) if team else "UNK",
            "played": s.matches_played,
            "won": s.wins,
            "drawn": s.draws,
            "lost": s.losses,
            "goals_for": s.goals_for,
            "goals_against": s.goals_against,
            "goal_difference": s.goal_difference,
            "points": s.points,
            "form": s.form,
            "win_percentage": round(s.wins / s.matches_played * 100) if s.matches_played else 0,
        })
    return result
