from fakes import make_state

from veto_core import summary


def _completed_bo3():
    state = make_state("bo3", phase=3, currentStepIndex=9, deciderMapId=7, deciderSide=0, deciderSidePickerTeam=0)
    state["teams"][0].update(bannedMapIds=[1, 5], pickedMapIds=[3])
    state["teams"][1].update(bannedMapIds=[2, 6], pickedMapIds=[4])
    state["stepMapIds"] = [1, 2, 3, 3, 4, 4, 5, 6, 7]
    state["stepSideVals"] = [-1, -1, -1, 1, -1, 0, -1, -1, 0]
    return state


def test_phase_and_turn_labels():
    assert summary.phase_label(make_state()) == "Ban Phase"
    assert summary.phase_label(make_state(phase=2)) == "Side Selection"
    assert summary.phase_label(make_state(phase=3)) == "Completed"
    assert summary.phase_label(None) == ""
    assert summary.current_team_name(make_state(currentTurnTeam=1)) == "Beta"


def test_option_name_fallbacks():
    state = make_state()
    assert summary.option_name(state, 2) == "Bind"
    assert summary.option_name(state, 42) == "Map 42"
    assert summary.option_name(state, 0) == ""


def test_banned_picked_and_decider_flags():
    state = _completed_bo3()
    assert summary.is_banned(state, 5)
    assert not summary.is_banned(state, 3)
    assert summary.is_picked(state, 4)
    assert summary.is_decider(state, 7)
    # Decider is only revealed once completed.
    state["phase"] = 2
    assert not summary.is_decider(state, 7)


def test_attacking_and_defending_teams():
    state = _completed_bo3()
    assert summary.attacking_team_name(state) == "Alpha"
    assert summary.defending_team_name(state) == "Beta"
    state["deciderSide"] = 1
    assert summary.attacking_team_name(state) == "Beta"
    assert summary.defending_team_name(state) == "Alpha"
    state["deciderSide"] = -1
    assert summary.attacking_team_name(state) == "TBD"
    assert summary.defending_team_name(make_state()) == "TBD"


def test_side_summary_per_map():
    state = _completed_bo3()
    assert summary.side_summary(state, 3) == "Beta STARTS ON DEF"
    assert summary.side_summary(state, 4) == "Alpha STARTS ON ATK"
    assert summary.side_summary(state, 7) == "Alpha STARTS ON ATK"
    assert summary.side_summary(state, 1) == "SIDE INFO MISSING"
    assert summary.side_summary(None, 1) == "TBD"


def test_map_cards_in_play_order():
    cards = summary.map_cards(_completed_bo3())
    assert [c.map_name for c in cards] == ["Haven", "Split", "Icebox"]
    assert [c.selected_by for c in cards] == ["Alpha", "Beta", "Decider"]
    assert cards[0].side_summary == "Beta STARTS ON DEF"
    assert cards[2].image_url == ""


def test_map_cards_bo1_only_decider():
    state = make_state(phase=3, deciderMapId=1, deciderSide=1, deciderSidePickerTeam=1)
    cards = summary.map_cards(state)
    assert len(cards) == 1
    assert cards[0].image_url == "/img/ascent.png"
    assert cards[0].side_summary == "Beta STARTS ON DEF"
    assert summary.map_cards(None) == []
