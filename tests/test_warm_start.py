"""
Tests for the initial guess policies.
"""

import numpy as np

from conftest import COM_HEIGHT, GRAVITY, MASS
from centroidal_nmpc.mpc import (
    CentroidalMPCConfig,
    CentroidalSolution,
    CentroidalState,
    ContactScheduleTracker,
    DecisionLayout,
    WarmStartManager,
    WarmStartPolicy
)


def setup(config, phase_list, initial_time=0.0):
    tracker = ContactScheduleTracker(config)
    tracker.set_contact_phase_list(phase_list)
    schedule = tracker.sample(initial_time)
    layout = DecisionLayout(
        config.number_of_knots,
        [c.number_of_corners for c in config.contacts],
        len(schedule.adjustable_contacts)
    )
    return schedule, layout


def config_with_policy(params, policy):
    params['warm_start_policy'] = policy.value
    return CentroidalMPCConfig.from_dict(params)


STATE = CentroidalState([0.01, 0.0, 0.5], [0.1, 0.0, 0.0], [0.0, 0.2, 0.0])


def reference(N):
    com = np.tile([0.0, 0.0, COM_HEIGHT], (N, 1))
    com[:, 0] = 0.05 * np.arange(N)
    return com, np.zeros((N, 3))


class TestWarmStartManager:
    """Initial guess of a cycle."""

    def test_none_holds_measured_state(self, params, left_step):
        config = config_with_policy(params, WarmStartPolicy.NONE)
        schedule, layout = setup(config, left_step)
        guess = WarmStartManager(config).initial_guess(
            layout, schedule, STATE, *reference(layout.number_of_knots)
        )

        assert guess.shape == (layout.size,)
        np.testing.assert_allclose(guess[layout.com], np.tile(STATE.com, (10, 1)))
        np.testing.assert_allclose(guess[layout.dcom], np.tile(STATE.dcom, (10, 1)))
        assert np.all(guess[layout.forces[0]] == 0.0)
        np.testing.assert_allclose(guess[layout.contact_positions[0]], [0.1, 0.1, 0.0])

    def test_from_nominal(self, params, left_step):
        config = config_with_policy(params, WarmStartPolicy.FROM_NOMINAL)
        schedule, layout = setup(config, left_step)
        com_reference, angular_momentum_reference = reference(layout.number_of_knots)
        guess = WarmStartManager(config).initial_guess(
            layout, schedule, STATE, com_reference, angular_momentum_reference
        )

        # knot 0 is the measured state, the rest follows the reference
        np.testing.assert_allclose(guess[layout.com[0]], STATE.com)
        np.testing.assert_allclose(guess[layout.angular_momentum[0]], STATE.angular_momentum)
        np.testing.assert_allclose(guess[layout.com[1:]], com_reference[1:])
        np.testing.assert_allclose(guess[layout.dcom[1:, 0]], 0.5)

        weight = MASS * GRAVITY
        # double support: weight shared among 8 corners
        np.testing.assert_allclose(guess[layout.forces[1][0, :, 2]], weight / 8)
        # single support: only the right foot
        np.testing.assert_allclose(guess[layout.forces[1][4, :, 2]], weight / 4)
        assert np.all(guess[layout.forces[0][3:6]] == 0.0)

    def test_from_previous_falls_back_to_nominal(self, params, left_step):
        config = config_with_policy(params, WarmStartPolicy.FROM_PREVIOUS)
        schedule, layout = setup(config, left_step)
        args = (layout, schedule, STATE, *reference(layout.number_of_knots))

        previous = WarmStartManager(config).initial_guess(*args)
        params['warm_start_policy'] = 'from_nominal'
        nominal = WarmStartManager(CentroidalMPCConfig.from_dict(params)).initial_guess(*args)
        np.testing.assert_allclose(previous, nominal)

    def test_from_previous_shifts_solution(self, params, double_support):
        config = config_with_policy(params, WarmStartPolicy.FROM_PREVIOUS)
        N = config.number_of_knots
        manager = WarmStartManager(config)

        com = np.zeros((N, 3))
        com[:, 0] = np.arange(N)
        forces = np.zeros((N, 4, 3))
        forces[..., 2] = np.arange(N)[:, None]
        manager.store(CentroidalSolution(
            initial_time=0.0,
            com=com,
            dcom=np.zeros((N, 3)),
            angular_momentum=np.zeros((N, 3)),
            forces={'left_foot': forces, 'right_foot': forces.copy()}
        ))

        schedule, layout = setup(config, double_support, initial_time=0.1)
        com_reference, angular_momentum_reference = reference(N)
        guess = manager.initial_guess(
            layout, schedule, STATE, com_reference, angular_momentum_reference
        )

        np.testing.assert_allclose(guess[layout.com[0]], STATE.com)
        np.testing.assert_allclose(guess[layout.com[1:N - 1, 0]], np.arange(2, N))
        # new tail knot from the reference
        np.testing.assert_allclose(guess[layout.com[N - 1]], com_reference[N - 1])
        # the tail velocity is the reference velocity, not the held previous one
        np.testing.assert_allclose(guess[layout.dcom[1:N - 1]], 0.0)
        np.testing.assert_allclose(guess[layout.dcom[N - 1]], [0.5, 0.0, 0.0])
        np.testing.assert_allclose(guess[layout.forces[0][:N - 1, 0, 2]], np.arange(1, N))
        np.testing.assert_allclose(guess[layout.forces[0][N - 1, 0, 2]], N - 1)

    def test_clear_drops_previous_solution(self, params, double_support):
        config = config_with_policy(params, WarmStartPolicy.FROM_PREVIOUS)
        N = config.number_of_knots
        manager = WarmStartManager(config)
        manager.store(CentroidalSolution(
            initial_time=0.0,
            com=np.ones((N, 3)),
            dcom=np.zeros((N, 3)),
            angular_momentum=np.zeros((N, 3)),
            forces={}
        ))
        manager.clear()

        schedule, layout = setup(config, double_support, initial_time=0.1)
        com_reference, angular_momentum_reference = reference(N)
        guess = manager.initial_guess(
            layout, schedule, STATE, com_reference, angular_momentum_reference
        )
        np.testing.assert_allclose(guess[layout.com[1:]], com_reference[1:])
