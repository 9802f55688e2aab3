import json

import numpy as np
import pytest

from twophase.errors import (
    InfeasibleError,
    IterationLimitError,
    NoValidPivotRowError,
    ParseError,
    SimplexError,
    TableauShapeError,
)
from twophase.parser import Direction
from twophase.solver import main, solve
from twophase.trace import FinalReport, PhaseComplete, ProblemEcho, TableauSnapshot, render_trace

SCENARIO_A = ("3x1+5x2", ["x1<=4", "2x2<=12", "3x1+2x2<=18"])
SCENARIO_D = ("x1+x2", ["x1+x2=5", "x1>=1"])


def snapshots(events, phase):
    return [e for e in events if isinstance(e, TableauSnapshot) and e.phase == phase]


def test_scenario_a_bounded_feasible():
    res = solve(*SCENARIO_A, direction=Direction.MAXIMIZE)
    assert res.optimal_value == pytest.approx(36.0)
    assert res.values == pytest.approx({"x1": 2.0, "x2": 6.0})
    assert res.iterations == (0, 2)
    assert res.variables == ["x1", "x2"]


def test_scenario_a_legacy_reads_objective_row():
    res = solve(*SCENARIO_A, direction="max", method="legacy")
    assert res.optimal_value == pytest.approx(36.0)
    # basic variables have zero reduced cost, so nothing is reported
    assert res.values == {}


def test_scenario_b_no_valid_pivot_row():
    with pytest.raises(NoValidPivotRowError) as exc:
        solve("x1", ["x1-x2<=10"], direction="max")
    err = exc.value
    assert err.phase == 2
    assert err.kind == "no_valid_pivot_row"
    assert str(err) == "No feasible solution."
    # x1 only appears in row 0, so it starts phase 2 basic at 10 and column x2
    # fails the ratio test before any pivot
    assert isinstance(err.trace[0], ProblemEcho)
    assert [s.iteration for s in snapshots(err.trace, phase=2)] == [0]
    assert err.column == 1


def test_scenario_b_legacy_fails_the_same_way():
    with pytest.raises(NoValidPivotRowError):
        solve("x1", ["x1-x2<=10"], direction="max", method="legacy")


def test_scenario_c_parse_failure():
    with pytest.raises(ParseError) as exc:
        solve("x1", ["x1 10"])
    assert exc.value.position == 1
    assert "position 1" in exc.value.message
    assert len(exc.value.trace) == 1


def test_scenario_d_equality_and_surplus():
    res = solve(*SCENARIO_D, direction=Direction.MINIMIZE)
    assert res.optimal_value == pytest.approx(5.0)
    assert res.values == pytest.approx({"x1": 1.0, "x2": 4.0})
    assert res.iterations == (1, 0)

    phase1 = snapshots(res.trace, phase=1)
    # artificial sum is zero at the end of phase 1
    assert phase1[-1].tableau[-1, -1] == pytest.approx(0.0)
    # phase 2 keeps the tableau shape and carries no artificial mass
    start2 = snapshots(res.trace, phase=2)[0].tableau
    assert start2.shape == phase1[0].tableau.shape
    np.testing.assert_array_equal(start2[:, 3:5], 0.0)


def test_scenario_d_legacy_rebuilds_phase_two():
    res = solve(*SCENARIO_D, direction="min", method="legacy")
    assert res.iterations == (0, 0)
    assert res.optimal_value == 0.0
    # the untouched cost coefficients are what the objective row holds
    assert res.values == {"x1": 1.0, "x2": 1.0}


def test_infeasible_problem_detected_after_phase_one():
    with pytest.raises(InfeasibleError) as exc:
        solve("x1", ["x1<=1", "x1>=2"], direction="min")
    assert exc.value.artificial_sum == pytest.approx(1.0)
    assert not any(isinstance(e, PhaseComplete) for e in exc.value.trace)


def test_zero_level_artificial_is_pivoted_out(monkeypatch):
    import twophase.solver as solver_mod

    real_pivot = solver_mod.pivot
    calls = []

    def spy(T, row, col):
        calls.append((row, col))
        return real_pivot(T, row, col)

    monkeypatch.setattr(solver_mod, "pivot", spy)

    res = solve("3x1+2x2", ["-x1-2x2<=0", "-2x1+2x2=2", "-2x1=0"], direction="min")
    assert res.optimal_value == pytest.approx(2.0)
    assert res.values == pytest.approx({"x2": 1.0})
    assert res.iterations == (1, 0)
    # row 2 keeps its artificial at zero after phase 1; x1 replaces it
    assert calls == [(2, 0)]
    start2 = snapshots(res.trace, phase=2)[0].tableau
    np.testing.assert_array_equal(start2[:, 3:5], 0.0)


def test_redundant_equality_keeps_an_empty_row():
    res = solve("x1+x2", ["x1-x2=0", "2x1-2x2=0", "x1>=1"], direction="min")
    assert res.optimal_value == pytest.approx(2.0)
    assert res.values == pytest.approx({"x1": 1.0, "x2": 1.0})
    start2 = snapshots(res.trace, phase=2)[0].tableau
    np.testing.assert_array_equal(start2[1], 0.0)


def test_iteration_cap_is_enforced():
    with pytest.raises(IterationLimitError) as exc:
        solve(*SCENARIO_A, max_iterations=1)
    assert exc.value.phase == 2


def test_no_constraints():
    with pytest.raises(TableauShapeError) as exc:
        solve("x1", [])
    assert exc.value.kind == "structural"


def test_unknown_method():
    with pytest.raises(ValueError):
        solve(*SCENARIO_A, method="big_m")


def test_failures_share_a_base_class():
    for args in [("x1", ["x1 10"]), ("x1", ["x1-x2<=10"])]:
        with pytest.raises(SimplexError):
            solve(*args)


def test_trace_rendering():
    res = solve(*SCENARIO_A)
    assert isinstance(res.trace[-1], FinalReport)
    text = render_trace(res.trace)
    assert text == res.report
    assert "Objective function: 3x1+5x2" in text
    assert " R3: 3x1+2x2<=18" in text
    assert "Optimization type: Maximize" in text
    assert "1.00 0.00 1.00 0.00 0.00 4.00" in text
    assert "Phase 1 complete. Artificial variables eliminated." in text
    assert "-3.00 -5.00 0.00 0.00 0.00 0.00" in text
    assert "Iteration 2 (Phase 2):" in text
    assert "Optimal value: 36.00" in text
    assert "x1: 2.00" in text
    assert "x2: 6.00" in text


def test_solves_are_independent():
    first = solve(*SCENARIO_A)
    solve(*SCENARIO_D, direction="min")
    again = solve(*SCENARIO_A)
    np.testing.assert_array_equal(first.tableau, again.tableau)


def test_verbose_prints_trace(capsys):
    solve(*SCENARIO_A, verbose=True)
    out = capsys.readouterr().out
    assert "Iteration 1 (Phase 2):" in out
    assert "Optimal value: 36.00" in out


# CLI

def test_cli_solves_arguments(capsys):
    assert main(["3x1 + 5x2", "x1 <= 4", "2x2≤12", "3x1+2x2<=18"]) == 0
    out = capsys.readouterr().out
    assert "=== Result ===" in out
    assert "Optimal value: 36.00" in out
    assert "x1 = 2.00" in out
    assert "Method: two_phase" in out


def test_cli_reads_json(tmp_path, capsys):
    path = tmp_path / "lp.json"
    path.write_text(json.dumps({"objective": SCENARIO_D[0], "constraints": SCENARIO_D[1], "maximize": False}))
    assert main(["--json", str(path), "--no-verbose"]) == 0
    out = capsys.readouterr().out
    assert "Optimal value: 5.00" in out
    assert "Phase 1" not in out


def test_cli_reports_failure_kind(capsys):
    assert main(["x1", "x1-x2<=10", "--method", "legacy"]) == 1
    err = capsys.readouterr().err
    assert "Error (no_valid_pivot_row): No feasible solution." in err


def test_cli_requires_constraints():
    with pytest.raises(SystemExit) as exc:
        main(["x1"])
    assert exc.value.code == 2
