from itertools import combinations

import streamlit as st

# Local solver
from twophase.errors import SimplexError
from twophase.parser import normalize, parse_problem
from twophase.solver import METHODS, solve
from twophase.trace import fmt_num, render_trace

st.set_page_config(page_title="Two-Phase Simplex", layout="wide")
st.title("Two-Phase Simplex — Solve & Trace")

# Sidebar options
with st.sidebar:
    st.header("Options")
    method = st.selectbox("Method", list(METHODS), index=0)
    max_iterations = st.number_input("Iteration cap per phase", min_value=1, value=100, step=1)
    show_graph = st.checkbox("Show graph (2 variables only)", value=True)

with st.form("simplex_form"):
    objective_text = st.text_input("Objective function", "3x1+5x2")
    constraints_text = st.text_area("Constraints (one per line)", "x1<=4\n2x2<=12\n3x1+2x2<=18", height=160)
    opt_type = st.selectbox("Type", ["Maximize", "Minimize"], index=0)
    run = st.form_submit_button("Solve")


def plot_2d(problem, res):
    import matplotlib.pyplot as plt
    import numpy as np

    names = list(problem.variables)
    if len(names) != 2:
        return None

    A = []
    for c in problem.constraints:
        coeffs = c.coefficients()
        A.append([coeffs.get(names[0], 0.0), coeffs.get(names[1], 0.0)])
    b = [c.rhs for c in problem.constraints]
    senses = [c.operator for c in problem.constraints]

    pts = [(0.0, 0.0)]
    for (i, j) in combinations(range(len(A)), 2):
        a1, a2 = A[i]
        c1, c2 = A[j]
        det = a1*c2 - a2*c1
        if abs(det) < 1e-12:
            continue
        pts.append(((b[i]*c2 - a2*b[j]) / det, (a1*b[j] - b[i]*c1) / det))
    for i in range(len(A)):
        a1, a2 = A[i]
        if abs(a1) > 1e-12:
            pts.append((b[i]/a1, 0.0))
        if abs(a2) > 1e-12:
            pts.append((0.0, b[i]/a2))

    def feasible(p):
        x, y = p
        ok = True
        for (row, bi, s) in zip(A, b, senses):
            lhs = row[0]*x + row[1]*y
            if s == "<=":
                ok &= lhs <= bi + 1e-9
            elif s == ">=":
                ok &= lhs >= bi - 1e-9
            else:
                ok &= abs(lhs - bi) <= 1e-9
        return ok and x >= -1e-9 and y >= -1e-9

    feas = [p for p in pts if feasible(p)]
    if not feas:
        return None

    xs = [p[0] for p in feas]
    ys = [p[1] for p in feas]
    xmin, xmax = 0.0, max(xs)*1.2 + 1.0
    ymin, ymax = 0.0, max(ys)*1.2 + 1.0
    grid_x = np.linspace(xmin, xmax, 400)

    fig, ax = plt.subplots(figsize=(6, 6))
    for i, c in enumerate(problem.constraints):
        a1, a2 = A[i]
        color = f"C{i % 10}"
        label = f"R{i+1}: {c.text}"
        if abs(a2) < 1e-12:
            ax.axvline(b[i]/a1 if abs(a1) > 1e-12 else 0, color=color, alpha=0.7, label=label)
        else:
            ax.plot(grid_x, (b[i] - a1*grid_x)/a2, color=color, alpha=0.7, label=label)

    # Shade feasible region
    X, Y = np.meshgrid(np.linspace(xmin, xmax, 200), np.linspace(ymin, ymax, 200))
    mask = np.ones_like(X, dtype=bool)
    for (row, bi, s) in zip(A, b, senses):
        lhs = row[0]*X + row[1]*Y
        if s == "<=":
            mask &= lhs <= bi + 1e-9
        elif s == ">=":
            mask &= lhs >= bi - 1e-9
        else:
            mask &= np.abs(lhs - bi) <= 1e-9
    ax.contourf(X, Y, mask, levels=[0.5, 1.5], colors=['#e8f7ff'], alpha=0.5)

    if res is not None and res.method == "two_phase":
        xopt = res.values.get(names[0], 0.0)
        yopt = res.values.get(names[1], 0.0)
        ax.plot([xopt], [yopt], 'ro', label=f"optimal ({xopt:.3g}, {yopt:.3g})")
        ax.annotate(f"Z* = {fmt_num(res.optimal_value)}", (xopt, yopt), textcoords="offset points", xytext=(8, 8))

    ax.set_xlim(xmin, xmax)
    ax.set_ylim(ymin, ymax)
    ax.set_xlabel(names[0])
    ax.set_ylabel(names[1])
    ax.set_title('Constraints and Feasible Region')
    ax.legend(loc='best', fontsize=8)
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


if run:
    objective = normalize(objective_text)
    constraints = [c for c in map(normalize, constraints_text.split("\n")) if c]
    direction = "max" if opt_type == "Maximize" else "min"

    if not objective or not constraints:
        st.warning("Please enter the objective function and at least one constraint.")
    else:
        try:
            res = solve(objective, constraints, direction=direction, method=method,
                        max_iterations=int(max_iterations))
        except SimplexError as e:
            st.subheader("Solution steps")
            st.code(render_trace(e.trace) + "Error: " + e.message)
            st.error(f"Error: {e.message}")
        else:
            st.subheader("Solution steps")
            st.code(res.report)
            st.subheader("Result")
            st.json({
                "optimal_value": fmt_num(res.optimal_value),
                "values": {name: fmt_num(v) for name, v in res.values.items()},
                "iterations": {"phase_1": res.iterations[0], "phase_2": res.iterations[1]},
                "method": res.method,
            })

            st.subheader("Graph")
            if show_graph and len(res.variables) == 2:
                fig = plot_2d(parse_problem(objective, constraints, direction), res)
                if fig is not None:
                    st.pyplot(fig)
                else:
                    st.info("No feasible region to plot or numerical issue.")
            else:
                st.info("Graph available only for 2 variables.")
