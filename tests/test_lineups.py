import pytest
from sqlmodel import Session, select

from app.exceptions import ConflictError, NotFound, ValidationError
from app.models import Formation, LineupPlayer
from app.services.lineups import (
    LineupPlayerIn,
    create_formation,
    formation_slot_count,
    get_lineup,
    list_formations,
    save_lineup,
)


def entries(players, starters=11, bench=0):
    """Lineup entries for the first ``starters`` players plus ``bench`` substitutes."""
    selected = players[:starters + bench]
    return [
        LineupPlayerIn(
            player_id=p.id,
            position=p.position,
            jersey_number=p.jersey_number,
            is_starter=i < starters,
        )
        for i, p in enumerate(selected)
    ]


@pytest.fixture(name="formation")
def formation_fixture(session: Session, league):
    return create_formation(session, league.home.id, "Classic", "4-4-2", is_default=True)


@pytest.mark.parametrize("structure,slots", [
    ("4-4-2", 11),
    ("4-3-3", 11),
    ("3-4-2-1", 11),
    ("4-2-3-1", 11),
    ("5-3-2", 11),
])
def test_formation_slot_count(structure, slots):
    assert formation_slot_count(structure) == slots


@pytest.mark.parametrize("structure", ["", "4-4", "442", "4-4-3", "a-b-c", "4-4-2-"])
def test_formation_slot_count_rejects(structure):
    with pytest.raises(ValidationError):
        formation_slot_count(structure)


def test_get_lineup_before_submission(session: Session, make_match, league):
    match = make_match()
    assert get_lineup(session, match.id, league.home.id) is None


def test_get_lineup_unknown_match(session: Session, league):
    with pytest.raises(NotFound):
        get_lineup(session, 999, league.home.id)


def test_save_and_get_lineup(session: Session, league, make_match, formation):
    match = make_match()
    squad = league.squads[league.home.id]

    lineup = save_lineup(session, match.id, league.home.id, formation.id, entries(squad, bench=3))

    assert lineup.version == 1
    saved = get_lineup(session, match.id, league.home.id)
    assert saved["formation_structure"] == "4-4-2"
    assert [p["player_id"] for p in saved["players"]] == [p.id for p in squad]
    assert sum(p["is_starter"] for p in saved["players"]) == 11
    assert get_lineup(session, match.id, league.away.id) is None


def test_exact_policy_requires_full_eleven(session: Session, league, make_match, formation):
    match = make_match()
    squad = league.squads[league.home.id]

    with pytest.raises(ValidationError):
        save_lineup(session, match.id, league.home.id, formation.id, entries(squad, starters=10), policy="exact")
    with pytest.raises(ValidationError):
        save_lineup(session, match.id, league.home.id, formation.id, entries(squad, starters=12), policy="exact")

    assert get_lineup(session, match.id, league.home.id) is None


def test_subset_policy_accepts_partial_eleven(session: Session, league, make_match, formation):
    match = make_match()
    squad = league.squads[league.home.id]

    lineup = save_lineup(session, match.id, league.home.id, formation.id, entries(squad, starters=7), policy="subset")
    assert lineup.id is not None

    with pytest.raises(ValidationError):
        save_lineup(session, match.id, league.home.id, formation.id, entries(squad, starters=12), policy="subset")
    with pytest.raises(ValidationError):
        save_lineup(session, match.id, league.home.id, formation.id, entries(squad, starters=0, bench=3), policy="subset")


def test_unknown_policy_rejected(session: Session, league, make_match, formation):
    match = make_match()
    with pytest.raises(ValidationError):
        save_lineup(session, match.id, league.home.id, formation.id, entries(league.squads[league.home.id]), policy="loose")


def test_duplicate_player_rejected(session: Session, league, make_match, formation):
    match = make_match()
    lineup = entries(league.squads[league.home.id])
    lineup[10] = lineup[0]

    with pytest.raises(ValidationError):
        save_lineup(session, match.id, league.home.id, formation.id, lineup)


@pytest.mark.parametrize("jersey", [0, 100])
def test_jersey_number_bounds(session: Session, league, make_match, formation, jersey):
    match = make_match()
    lineup = entries(league.squads[league.home.id])
    lineup[3].jersey_number = jersey

    with pytest.raises(ValidationError):
        save_lineup(session, match.id, league.home.id, formation.id, lineup)


def test_player_from_other_team_rejected(session: Session, league, make_match, formation):
    match = make_match()
    lineup = entries(league.squads[league.home.id])
    lineup[5].player_id = league.squads[league.away.id][5].id

    with pytest.raises(ValidationError):
        save_lineup(session, match.id, league.home.id, formation.id, lineup)


def test_team_not_in_match_rejected(session: Session, league, make_match):
    match = make_match()
    formation = create_formation(session, league.third.id, "Third shape", "4-3-3")

    with pytest.raises(ValidationError):
        save_lineup(session, match.id, league.third.id, formation.id, entries(league.squads[league.third.id]))


def test_formation_of_other_team_rejected(session: Session, league, make_match, formation):
    match = make_match()
    with pytest.raises(ValidationError):
        save_lineup(session, match.id, league.away.id, formation.id, entries(league.squads[league.away.id]))


def test_unknown_formation(session: Session, league, make_match):
    match = make_match()
    with pytest.raises(NotFound):
        save_lineup(session, match.id, league.home.id, 999, entries(league.squads[league.home.id]))


def test_failed_replacement_keeps_previous_lineup(session: Session, league, make_match, formation):
    match = make_match()
    squad = league.squads[league.home.id]
    save_lineup(session, match.id, league.home.id, formation.id, entries(squad))
    before = get_lineup(session, match.id, league.home.id)

    # Invalid player id in the middle of the list
    replacement = entries(squad[3:] + squad[:3])
    replacement[5].player_id = 424242

    with pytest.raises(ValidationError):
        save_lineup(session, match.id, league.home.id, formation.id, replacement)

    assert get_lineup(session, match.id, league.home.id) == before


def test_commit_failure_keeps_previous_lineup(session: Session, league, make_match, formation, monkeypatch):
    match = make_match()
    squad = league.squads[league.home.id]
    save_lineup(session, match.id, league.home.id, formation.id, entries(squad))
    before = get_lineup(session, match.id, league.home.id)

    def failing_commit():
        raise RuntimeError("database went away")

    monkeypatch.setattr(session, "commit", failing_commit)
    with pytest.raises(RuntimeError):
        save_lineup(session, match.id, league.home.id, formation.id, entries(squad[3:] + squad[:3]))
    monkeypatch.undo()

    assert get_lineup(session, match.id, league.home.id) == before
    rows = session.exec(select(LineupPlayer)).all()
    assert len(rows) == 11


def test_replacement_bumps_version(session: Session, league, make_match, formation):
    match = make_match()
    squad = league.squads[league.home.id]
    first = save_lineup(session, match.id, league.home.id, formation.id, entries(squad))
    assert first.version == 1

    second = save_lineup(session, match.id, league.home.id, formation.id, entries(squad, bench=2), expected_version=1)
    assert second.version == 2
    assert len(get_lineup(session, match.id, league.home.id)["players"]) == 13


def test_stale_version_conflicts(session: Session, league, make_match, formation):
    match = make_match()
    squad = league.squads[league.home.id]
    save_lineup(session, match.id, league.home.id, formation.id, entries(squad))
    save_lineup(session, match.id, league.home.id, formation.id, entries(squad, bench=1), expected_version=1)

    with pytest.raises(ConflictError):
        save_lineup(session, match.id, league.home.id, formation.id, entries(squad, bench=3), expected_version=1)

    saved = get_lineup(session, match.id, league.home.id)
    assert saved["version"] == 2
    assert len(saved["players"]) == 12


def test_expected_version_without_lineup_conflicts(session: Session, league, make_match, formation):
    match = make_match()
    with pytest.raises(ConflictError):
        save_lineup(session, match.id, league.home.id, formation.id, entries(league.squads[league.home.id]),
                    expected_version=3)


def test_last_save_wins_without_version(session: Session, league, make_match, formation):
    match = make_match()
    squad = league.squads[league.home.id]
    save_lineup(session, match.id, league.home.id, formation.id, entries(squad))
    save_lineup(session, match.id, league.home.id, formation.id, entries(squad[3:] + squad[:3]))

    saved = get_lineup(session, match.id, league.home.id)
    assert saved["players"][0]["player_id"] == squad[3].id
    assert saved["version"] == 2


def test_new_default_formation_replaces_old(session: Session, league, formation):
    newer = create_formation(session, league.home.id, "Attack", "4-3-3", is_default=True)

    defaults = session.exec(
        select(Formation).where(Formation.team_id == league.home.id, Formation.is_default == True)  # noqa: E712
    ).all()
    assert [f.id for f in defaults] == [newer.id]
    assert list_formations(session, league.home.id)[0].id == newer.id


def test_create_formation_validates(session: Session, league):
    with pytest.raises(ValidationError):
        create_formation(session, league.home.id, "Broken", "4-4-3")
    with pytest.raises(NotFound):
        create_formation(session, 999, "Ghost", "4-4-2")
