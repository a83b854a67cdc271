"""CLI main entry point."""

import argparse
import sys

from threebody_sim.backends.factory import list_available_backends
from threebody_sim.coordinator import StepCoordinator
from threebody_sim.io.state_io import StateFormatError, load_state, save_state
from threebody_sim.presets import PRESETS
from threebody_sim.utils.config import Config, load_config, read_config_file, save_config
from threebody_sim.utils.reproducibility import set_all_seeds


def build_config(args) -> Config:
    """Config file values, overridden by any flag given on the command line."""
    config = load_config(args.config) if args.config else Config()
    overrides = {
        'scenario': args.preset,
        'base_dt': args.dt,
        'sim_speed': args.speed,
        'gravity_g': args.G,
        'softening': args.softening,
        'integrator': args.integrator.upper() if args.integrator else None,
        'gpu_capacity': args.gpu_capacity,
        'array_backend': args.backend,
        'seed': args.seed,
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)
    if args.reverse:
        config.time_direction = -1
    if args.collisions:
        config.enable_collisions = True
    if args.worker:
        config.use_worker = True
    if args.gpu:
        config.use_gpu = True
    return config


def requested_gravity(args):
    """G set by --G or by the config file, or None to keep the preset's own G."""
    if args.G is not None:
        return args.G
    if args.config:
        return read_config_file(args.config).get('gravity_g')
    return None


def run_simulation(args):
    """Run a headless simulation and print diagnostics."""
    config = build_config(args)

    if config.seed is not None:
        set_all_seeds(config.seed)

    if args.save_config:
        save_config(config, args.save_config)
        print(f"Config saved to {args.save_config}")

    with StepCoordinator(config) as sim:
        if args.load_state:
            try:
                sim.import_state(load_state(args.load_state))
            except (OSError, StateFormatError) as exc:
                print(f"Could not load state from {args.load_state}: {exc}")
                sys.exit(1)
        else:
            sim.load_scenario(config.scenario)
            gravity = requested_gravity(args)
            if gravity is not None:
                sim.set_gravity(gravity)
            for _ in range(args.add_random):
                sim.add_random_body()

        if sim.offloaded is not None:
            sim.offloaded.wait_ready(timeout=5.0)

        print(f"Running simulation: {config.scenario} with {len(sim.store)} bodies")
        print(f"Integrator: {config.integrator}, dt: {config.dt}, eps: {config.softening}, "
              f"collisions: {'on' if config.enable_collisions else 'off'}")

        sim.sample_energy()
        for step in range(1, args.steps + 1):
            if not sim.step_once():
                break
            if step % args.debug_every == 0:
                sample = sim.sample_energy()
                drift = f"{sample.drift:.4f}" if sample.drift is not None else "n/a"
                print(f"[Diag] step={step} time={sim.time:.3f} bodies={len(sim.store)} "
                      f"K={sample.ke:.6f} U={sample.pe:.6f} E={sample.total:.6f} "
                      f"drift={drift}% backend={sim.last_backend}")

        if sim.dropped_ticks:
            print(f"Dropped ticks: {sim.dropped_ticks}")

        for warning in sim.predict_collisions():
            i, j = warning['bodies']
            print(f"Collision warning: bodies {i} and {j} in {warning['time_to_collision']:.2f}")

        com, com_v = sim.center_of_mass()
        print(f"Center of mass: ({com[0]:.4f}, {com[1]:.4f}, {com[2]:.4f}) "
              f"velocity: ({com_v[0]:.4f}, {com_v[1]:.4f}, {com_v[2]:.4f})")

        if args.save_state:
            save_state(sim.export_state(), args.save_state)
            print(f"State saved to {args.save_state}")

    print("Simulation complete!")


def main(argv=None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Three-body simulator - small N-body gravity simulation")

    # Simulation parameters
    parser.add_argument('--config', type=str, default=None,
                       help='Load settings from a .json or .yaml config file')
    parser.add_argument('--preset', type=str, default=None,
                       choices=sorted(PRESETS),
                       help='Preset scenario (default: figure8)')
    parser.add_argument('--add-random', type=int, default=0,
                       help='Add N random bodies to the preset')
    parser.add_argument('--steps', type=int, default=1000,
                       help='Number of simulation steps')
    parser.add_argument('--dt', type=float, default=None,
                       help='Base time step (default: 0.01)')
    parser.add_argument('--speed', type=float, default=None,
                       help='Simulation speed multiplier applied to dt')
    parser.add_argument('--reverse', action='store_true',
                       help='Run time backwards')
    parser.add_argument('--G', type=float, default=None,
                       help='Gravitational constant (default: preset value)')
    parser.add_argument('--softening', type=float, default=None,
                       help='Force softening epsilon (default: 0.1)')
    parser.add_argument('--integrator', type=str, default=None,
                       choices=['euler', 'rk4'],
                       help='Numerical integrator')
    parser.add_argument('--collisions', action='store_true',
                       help='Enable merges and bounces')
    parser.add_argument('--debug-every', type=int, default=100,
                       help='Print diagnostics every N steps')

    # Execution
    parser.add_argument('--worker', action='store_true',
                       help='Run physics on the background worker thread')
    parser.add_argument('--gpu', action='store_true',
                       help='Run physics on the grid kernel (Euler only)')
    parser.add_argument('--gpu-capacity', type=int, default=None,
                       help='Grid kernel body capacity (default: 1024)')
    parser.add_argument('--backend', type=str, default=None,
                       choices=['numpy', 'jax', 'pytorch', 'cupy'],
                       help='Array backend for the grid kernel (auto-select if not specified)')

    # Reproducibility and state
    parser.add_argument('--seed', type=int, default=None,
                       help='Random seed for reproducibility')
    parser.add_argument('--load-state', type=str, default=None,
                       help='Start from a saved state file instead of a preset')
    parser.add_argument('--save-state', type=str, default=None,
                       help='Save final state to file')
    parser.add_argument('--save-config', type=str, default=None,
                       help='Write the effective config to file')

    # Info
    parser.add_argument('--list-backends', action='store_true',
                       help='List available backends and exit')

    args = parser.parse_args(argv)

    if args.list_backends:
        backends = list_available_backends()
        print("Available backends:")
        for backend in backends:
            print(f"  - {backend}")
        return

    if args.debug_every < 1:
        parser.error("--debug-every must be >= 1")

    run_simulation(args)


if __name__ == '__main__':
    main()
