from fakes import ManualTimer, make_state

from veto_core import ActionKind, TransitionPhase, TransitionSequencer, describe_step


def _advanced(index, **kw):
    state = make_state("bo3", currentStepIndex=index, **kw)
    state["stepMapIds"][:4] = [1, 2, 3, 3]
    state["stepSideVals"][3] = 1
    return state


def test_first_state_only_sets_baseline():
    seq = TransitionSequencer(ManualTimer())
    assert seq.observe(_advanced(2)) is None
    assert seq.phase is TransitionPhase.IDLE


def test_advance_runs_show_then_fade_then_idle():
    timer = ManualTimer()
    seq = TransitionSequencer(timer, dwell=2.0, fade=0.5)
    seq.observe(_advanced(0))

    shown = seq.observe(_advanced(1))
    assert shown is not None
    assert shown.step_index == 0
    assert shown.headline == "Alpha banned Ascent"
    assert seq.phase is TransitionPhase.SHOWING

    timer.advance(1.9)
    assert seq.phase is TransitionPhase.SHOWING
    timer.advance(0.1)
    assert seq.phase is TransitionPhase.FADING_OUT
    assert seq.current is shown
    timer.advance(0.5)
    assert seq.phase is TransitionPhase.IDLE
    assert seq.current is None
    assert timer.pending == 0


def test_same_or_lower_index_does_nothing():
    timer = ManualTimer()
    seq = TransitionSequencer(timer)
    seq.observe(_advanced(2))
    assert seq.observe(_advanced(2)) is None
    assert seq.observe(_advanced(1)) is None
    assert seq.phase is TransitionPhase.IDLE
    assert timer.pending == 0


def test_burst_shows_only_latest_step():
    timer = ManualTimer()
    seq = TransitionSequencer(timer, dwell=2.0, fade=0.5)
    seq.observe(_advanced(0))
    seq.observe(_advanced(1))
    timer.advance(1.0)

    shown = seq.observe(_advanced(4))
    assert shown.step_index == 3
    assert shown.kind is ActionKind.SIDE
    assert shown.headline == "Beta chose Defense on Haven"
    # The first transition's timer was cancelled; the new dwell restarts.
    timer.advance(1.5)
    assert seq.phase is TransitionPhase.SHOWING
    timer.advance(0.5)
    assert seq.phase is TransitionPhase.FADING_OUT


def test_completed_phase_stops_sequencer():
    timer = ManualTimer()
    seq = TransitionSequencer(timer)
    seq.observe(_advanced(0))
    seq.observe(_advanced(1))
    done = _advanced(9, phase=3)
    assert seq.observe(done) is None
    assert seq.phase is TransitionPhase.IDLE
    assert timer.pending == 0


def test_reset_forgets_baseline():
    seq = TransitionSequencer(ManualTimer())
    seq.observe(_advanced(3))
    seq.reset()
    assert seq.observe(_advanced(4)) is None


def test_describe_pick_step():
    state = _advanced(3)
    state["stepMapIds"][2] = 3
    assert describe_step(state, 2).headline == "Alpha picked Haven"
