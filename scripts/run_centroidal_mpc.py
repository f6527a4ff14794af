#!/usr/bin/env python3
"""
Closed-loop demo of the Centroidal MPC

Generates a nominal walking contact plan, runs the controller at its
sampling time and integrates the centroidal dynamics with the computed
contact forces.
"""

import numpy as np
import argparse
from pathlib import Path
import time
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from centroidal_nmpc.contacts import ContactPhaseList, PlannedContact
from centroidal_nmpc.mpc import CentroidalMPC, CentroidalMPCConfig


def walking_contact_plan(
    n_steps: int,
    step_length: float,
    step_width: float,
    stance_duration: float,
    swing_duration: float
) -> ContactPhaseList:
    """
    Alternating single/double support plan

    Both feet start in contact; the left foot moves first.
    """
    left = [PlannedContact('left_foot', [0.0, step_width / 2, 0.0],
                           activation_time=0.0)]
    right = [PlannedContact('right_foot', [0.0, -step_width / 2, 0.0],
                            activation_time=0.0)]

    t = stance_duration
    for i in range(n_steps):
        moving = left if i % 2 == 0 else right
        x = (i + 1) * step_length
        last = moving[-1]
        last.deactivation_time = t
        moving.append(PlannedContact(
            last.name, [x, last.position[1], 0.0],
            activation_time=t + swing_duration
        ))
        t += swing_duration + stance_duration

    return ContactPhaseList.from_contacts(left + right)


def main():
    """Main closed loop"""
    parser = argparse.ArgumentParser(description='Centroidal MPC walking demo')
    parser.add_argument('--config', type=str,
                        default=str(Path(__file__).parent.parent / 'config' / 'centroidal_mpc.yaml'),
                        help='Controller configuration (YAML)')
    parser.add_argument('--steps', type=int, default=4, help='Number of steps')
    parser.add_argument('--step-length', type=float, default=0.1, help='Step length (m)')
    parser.add_argument('--height', type=float, default=0.53, help='CoM height (m)')
    args = parser.parse_args()

    print("=" * 60)
    print("Centroidal MPC Demo")
    print("=" * 60)

    config = CentroidalMPCConfig.from_yaml(args.config)
    mpc = CentroidalMPC()
    if not mpc.initialize(config):
        sys.exit(1)

    stance, swing = 0.6, 0.6
    phase_list = walking_contact_plan(args.steps, args.step_length, 0.2, stance, swing)
    mpc.set_contact_phase_list(phase_list)
    duration = phase_list.last_time() if np.isfinite(phase_list.last_time()) \
        else args.steps * (stance + swing) + stance

    # CoM reference moving at the average walking speed
    dt = config.sampling_time
    n_samples = int(duration / dt) + config.number_of_knots
    speed = args.step_length / (stance + swing)
    com_reference = [np.array([speed * k * dt, 0.0, args.height]) for k in range(n_samples)]
    angular_momentum_reference = [np.zeros(3)] * n_samples
    mpc.set_reference_trajectory(com_reference, angular_momentum_reference)

    com = np.array([0.0, 0.0, args.height])
    dcom = np.zeros(3)
    angular_momentum = np.zeros(3)
    gravity = config.gravity_vector

    print(f"\nMass: {config.mass} kg, horizon: {config.number_of_knots} knots")
    print(f"Duration: {duration:.1f} s")
    print("\n" + "-" * 60)

    start_time = time.time()
    n_cycles = int(duration / dt)
    for cycle in range(n_cycles):
        mpc.set_state(com, dcom, angular_momentum)
        if not mpc.advance():
            print(f"MPC failed at t={mpc.current_time:.2f} s")
            break

        output = mpc.get_output()
        total_force = np.zeros(3)
        total_torque = np.zeros(3)
        for contact in output.contacts.values():
            if not contact.is_enabled:
                continue
            for corner in contact.corners:
                position = contact.position + contact.orientation @ corner.position
                total_force += corner.force
                total_torque += np.cross(position - com, corner.force)

        # Forward Euler, same model as the controller
        com = com + dt * dcom
        dcom = dcom + dt * (total_force / config.mass + gravity)
        angular_momentum = angular_momentum + dt * total_torque

        if cycle % 5 == 0:
            print(f"Time: {output.time:5.2f}s | "
                  f"CoM: [{com[0]:5.2f}, {com[1]:5.2f}, {com[2]:5.2f}] | "
                  f"Fz: {total_force[2]:7.1f} N | "
                  f"next: {sorted(output.next_planned_contact)}")

    stats = mpc.get_statistics()
    print("\n" + "=" * 60)
    print("Statistics:")
    print(f"  Wall time: {time.time() - start_time:.2f} s")
    print(f"  Total solves: {stats['solve_count']}")
    print(f"  Failures: {stats['failure_count']}")
    print(f"  Average solve time: {stats['avg_solve_time_ms']:.2f} ms")
    print("=" * 60)


if __name__ == "__main__":
    main()
