"""
Tests for the NLP construction: decision layout, bounds and constraints.
"""

import numpy as np
import casadi as cs
import pytest

from conftest import COM_HEIGHT, GRAVITY, MASS
from centroidal_nmpc.mpc import (
    CentroidalState,
    ContactScheduleTracker,
    DecisionLayout,
    ProblemBuilder
)


def build(config, phase_list, initial_time=0.0, state=None):
    tracker = ContactScheduleTracker(config)
    tracker.set_contact_phase_list(phase_list)
    schedule = tracker.sample(initial_time)
    if state is None:
        state = CentroidalState([0.0, 0.0, COM_HEIGHT], np.zeros(3), np.zeros(3))
    return ProblemBuilder(config).build(schedule, state), schedule


def evaluate(problem, name, x):
    block = next(c for c in problem.constraints if c.name == name)
    function = cs.Function('block', [problem.x], [block.expression])
    return np.asarray(function(x)).reshape(-1)


class TestDecisionLayout:
    """Indices of the decision vector."""

    def test_sizes(self):
        layout = DecisionLayout(10, [4, 4], number_of_adjustable_contacts=2)
        assert layout.knot_size() == 33
        assert layout.size == 10 * 33 + 6
        assert layout.number_of_slots == 2

    def test_indices_are_a_partition(self):
        layout = DecisionLayout(5, [4, 3], number_of_adjustable_contacts=1)
        indices = np.concatenate([
            layout.com.reshape(-1),
            layout.dcom.reshape(-1),
            layout.angular_momentum.reshape(-1),
            *[f.reshape(-1) for f in layout.forces],
            layout.contact_positions.reshape(-1),
        ])
        np.testing.assert_array_equal(np.sort(indices), np.arange(layout.size))

    def test_knot_ordering(self):
        layout = DecisionLayout(3, [4, 4])
        np.testing.assert_array_equal(layout.com[0], [0, 1, 2])
        np.testing.assert_array_equal(layout.dcom[0], [3, 4, 5])
        np.testing.assert_array_equal(layout.angular_momentum[0], [6, 7, 8])
        assert layout.forces[0][0, 0, 0] == 9
        assert layout.forces[1][0, 0, 0] == 21
        assert layout.com[1, 0] == 33


class TestProblemBuilder:
    """Constraint blocks and variable bounds."""

    def test_double_support_constraint_counts(self, config, double_support):
        problem, _ = build(config, double_support)

        assert problem.layout.size == 10 * 33
        assert problem.constraint_count('initial_state') == 9
        assert problem.constraint_count('dynamics_com') == 27
        assert problem.constraint_count('dynamics_dcom') == 27
        assert problem.constraint_count('dynamics_angular_momentum') == 27
        assert problem.constraint_count('unilaterality') == 10 * 8
        assert problem.constraint_count('friction_cone') == 10 * 8 * 4
        assert problem.constraint_count('contact_position_bounds') == 0
        assert problem.g.numel() == problem.lbg.size == problem.ubg.size

    def test_equality_and_inequality_blocks(self, config, double_support):
        problem, _ = build(config, double_support)

        equalities = {c.name for c in problem.equality_constraints}
        inequalities = {c.name for c in problem.inequality_constraints}
        assert equalities == {
            'initial_state', 'dynamics_com', 'dynamics_dcom', 'dynamics_angular_momentum'
        }
        assert inequalities == {'unilaterality', 'friction_cone'}

    def test_inactive_forces_are_pinned_to_zero(self, config, left_lift_off):
        problem, _ = build(config, left_lift_off)
        layout = problem.layout

        inactive = layout.forces[0][5:].reshape(-1)
        np.testing.assert_array_equal(problem.lbx[inactive], 0.0)
        np.testing.assert_array_equal(problem.ubx[inactive], 0.0)

        active = np.concatenate([layout.forces[0][:5].reshape(-1),
                                 layout.forces[1].reshape(-1)])
        assert np.all(np.isneginf(problem.lbx[active]))
        assert np.all(np.isposinf(problem.ubx[active]))

        # no feasibility constraints for the lifted foot
        assert problem.constraint_count('unilaterality') == (5 + 10) * 4

    def test_adjustable_contact_bounds(self, config, left_step):
        problem, schedule = build(config, left_step)

        assert problem.layout.number_of_adjustable_contacts == 1
        assert problem.layout.size == 10 * 33 + 3
        assert problem.constraint_count('contact_position_bounds_left_foot_0') == 3

        block = next(c for c in problem.constraints
                     if c.name == 'contact_position_bounds_left_foot_0')
        np.testing.assert_allclose(block.lower, [-0.08, -0.05, 0.0])
        np.testing.assert_allclose(block.upper, [0.08, 0.05, 0.0])

        x = np.zeros(problem.layout.size)
        x[problem.layout.contact_positions[0]] = [0.15, 0.12, 0.0]
        np.testing.assert_allclose(evaluate(problem, block.name, x), [0.05, 0.02, 0.0])

    def test_static_equilibrium_has_zero_defects(self, config, double_support):
        problem, _ = build(config, double_support)
        layout = problem.layout

        x = np.zeros(layout.size)
        x[layout.com] = [0.0, 0.0, COM_HEIGHT]
        for forces in layout.forces:
            x[forces[..., 2]] = MASS * GRAVITY / 8

        for name in ['initial_state', 'dynamics_com', 'dynamics_dcom',
                     'dynamics_angular_momentum']:
            np.testing.assert_allclose(evaluate(problem, name, x), 0.0, atol=1e-9)

        assert np.all(evaluate(problem, 'unilaterality', x) >= 0.0)
        assert np.all(evaluate(problem, 'friction_cone', x) <= 0.0)

    def test_external_force_enters_dynamics(self, config, double_support):
        state = CentroidalState(
            [0.0, 0.0, COM_HEIGHT], np.zeros(3), np.zeros(3),
            external_wrench=[MASS, 0.0, 0.0, 0.0, 0.0, 0.0]
        )
        problem, _ = build(config, double_support, state=state)
        layout = problem.layout

        x = np.zeros(layout.size)
        x[layout.com] = [0.0, 0.0, COM_HEIGHT]
        for forces in layout.forces:
            x[forces[..., 2]] = MASS * GRAVITY / 8

        # dcom[k+1] - (dcom[k] + dt * (1, 0, 0))
        defects = evaluate(problem, 'dynamics_dcom', x).reshape(-1, 3)
        np.testing.assert_allclose(defects, np.tile([-0.1, 0.0, 0.0], (9, 1)), atol=1e-9)

    def test_friction_cone_rejects_horizontal_force(self, config, double_support):
        problem, _ = build(config, double_support)
        layout = problem.layout

        x = np.zeros(layout.size)
        x[layout.forces[0][0, 0]] = [10.0, 0.0, 10.0]
        values = evaluate(problem, 'friction_cone', x)
        assert values.max() > 0.0

    @pytest.mark.parametrize('initial_time', [0.0, 0.35, 0.7])
    def test_layout_matches_schedule(self, config, left_step, initial_time):
        problem, schedule = build(config, left_step, initial_time)
        assert problem.layout.number_of_adjustable_contacts == len(schedule.adjustable_contacts)
        assert problem.x.numel() == problem.layout.size
