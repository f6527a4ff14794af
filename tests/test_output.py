"""
Tests for the decoding of the primal solution.
"""

import numpy as np
import pytest

from centroidal_nmpc.mpc import ContactScheduleTracker, DecisionLayout, OutputDecoder


@pytest.fixture
def step_solution(config, left_step):
    tracker = ContactScheduleTracker(config)
    tracker.set_contact_phase_list(left_step)
    schedule = tracker.sample(0.0)
    layout = DecisionLayout(config.number_of_knots, [4, 4], len(schedule.adjustable_contacts))

    x = np.zeros(layout.size)
    x[layout.com] = [0.0, 0.0, 0.53]
    x[layout.com[:, 0]] = 0.01 * np.arange(10)
    # non zero values also where the contacts are inactive
    for forces in layout.forces:
        x[forces[..., 2]] = 10.0
    x[layout.contact_positions[0]] = [0.12, 0.08, 0.0]

    decoder = OutputDecoder(config)
    return decoder, decoder.decode_solution(layout, schedule, x), schedule


class TestOutputDecoder:
    """From the primal vector to the published output."""

    def test_inactive_forces_are_exactly_zero(self, step_solution):
        _, solution, _ = step_solution
        left = solution.forces['left_foot']
        assert left.shape == (10, 4, 3)
        assert np.all(left[3:6] == 0.0)
        assert np.all(left[:3, :, 2] == 10.0)

    def test_wrong_size(self, config, step_solution):
        decoder, _, schedule = step_solution
        layout = DecisionLayout(config.number_of_knots, [4, 4], 1)
        with pytest.raises(ValueError):
            decoder.decode_solution(layout, schedule, np.zeros(layout.size - 1))

    def test_output(self, step_solution):
        decoder, solution, schedule = step_solution
        output = decoder.decode(solution, schedule)

        assert output.time == 0.0
        assert set(output.contacts) == {'left_foot', 'right_foot'}

        left = output.contacts['left_foot']
        assert left.is_enabled
        np.testing.assert_allclose(left.position, [0.0, 0.1, 0.0])
        assert len(left.corners) == 4
        np.testing.assert_allclose(left.corners[1].position, [0.1, -0.05, 0.0])
        np.testing.assert_allclose(left.get_contact_wrench()[:3], [0.0, 0.0, 40.0])

        assert len(output.com_trajectory) == 10
        np.testing.assert_allclose(output.com_trajectory[4], [0.04, 0.0, 0.53])
        np.testing.assert_allclose(output.force_trajectory['left_foot'][:, 2],
                                   [40.0] * 3 + [0.0] * 3 + [40.0] * 4)

    def test_next_planned_contact(self, step_solution):
        decoder, solution, schedule = step_solution
        output = decoder.decode(solution, schedule)

        assert list(output.next_planned_contact) == ['left_foot']
        planned = output.next_planned_contact['left_foot']
        np.testing.assert_allclose(planned.position, [0.12, 0.08, 0.0])
        assert planned.activation_time == 0.6
        # the nominal plan is not modified
        np.testing.assert_allclose(schedule.adjustable_contacts[0].nominal.position,
                                   [0.1, 0.1, 0.0])

    def test_swing_foot_reports_landing_location(self, config, left_step):
        tracker = ContactScheduleTracker(config)
        tracker.set_contact_phase_list(left_step)
        schedule = tracker.sample(0.4)
        layout = DecisionLayout(config.number_of_knots, [4, 4], len(schedule.adjustable_contacts))
        x = np.zeros(layout.size)
        x[layout.contact_positions[0]] = [0.11, 0.09, 0.0]

        decoder = OutputDecoder(config)
        output = decoder.decode(decoder.decode_solution(layout, schedule, x), schedule)

        left = output.contacts['left_foot']
        assert not left.is_enabled
        np.testing.assert_allclose(left.position, [0.11, 0.09, 0.0])
        assert all(np.all(c.force == 0.0) for c in left.corners)
