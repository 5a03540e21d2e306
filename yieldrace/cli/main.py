"""
YieldRace CLI - Command Line Interface for the solver competition engine

Main entry point for all CLI commands.
"""

import asyncio
import random
from typing import Optional

import click

from yieldrace.utils.logger import setup_logging, get_logger


def _load_registry(path: Optional[str]):
    from yieldrace.core.registry import SolverRegistry, load_registry

    if path:
        try:
            return load_registry(path)
        except (OSError, ValueError) as e:
            raise click.ClickException(str(e))
    return SolverRegistry()


def _format_apy(apy: float) -> str:
    return f"{apy * 100:.2f}%"


def _echo_change(competition) -> None:
    """Print one state change of a round."""
    from yieldrace.core.competition import CompetitionStatus

    if competition.status is CompetitionStatus.BIDDING:
        leader = competition.leader()
        if leader is None:
            click.echo("  Solvers are preparing...")
            return
        standings = ", ".join(
            f"{b.solver_name or b.solver_id} {_format_apy(b.apy)}"
            for b in competition.ranked_bids
        )
        click.echo(f"  [{competition.arrival_count:>2}] {standings}")
        return

    click.echo(f"  Round {competition.status.name}")


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--env-file", default=None, help="dotenv file with YIELDRACE_* settings")
@click.option("--log-dir", default=None, help="Also write logs to <dir>/yieldrace.log")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, env_file, log_dir):
    """YieldRace - Solver competition engine for yield intents"""
    import logging

    level = logging.DEBUG if debug else logging.WARNING
    setup_logging(level=level, log_dir=log_dir, log_to_file=log_dir is not None)

    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file


# =============================================================================
# Solver Commands
# =============================================================================

@cli.command("solvers")
@click.option("--registry", "registry_path", default=None, help="JSON solver registry")
def solvers(registry_path):
    """List registered solvers"""
    registry = _load_registry(registry_path)

    if len(registry) == 0:
        click.echo("No solvers registered")
        return

    click.echo(f"Registered solvers ({len(registry)}):")
    for solver in registry:
        click.echo(f"  {solver.id:<12} {solver.display_name:<18} {solver.description}")


# =============================================================================
# Competition Commands
# =============================================================================

@cli.command("race")
@click.option("--intent-id", required=True, help="Intent to run the round for")
@click.option("--market-apy", type=float, required=True, help="Direct deposit yield (fraction)")
@click.option("--min-apy", type=float, default=0.0, help="Intent yield floor (fraction)")
@click.option("--seed", type=int, default=None, help="Random seed for a reproducible round")
@click.option("--registry", "registry_path", default=None, help="JSON solver registry")
@click.option(
    "--policy",
    type=click.Choice(["count", "elapsed", "grace"]),
    default=None,
    help="Termination policy",
)
@click.option("--fast", is_flag=True, help="Use a virtual clock instead of waiting")
@click.pass_context
def race(ctx, intent_id, market_apy, min_apy, seed, registry_path, policy, fast):
    """Run one simulated solver competition"""
    from yieldrace.core.config import load_config
    from yieldrace.core.competition import (
        AsyncioTimer,
        CompetitionController,
        CompetitionError,
        VirtualTimer,
    )

    logger = get_logger("cli")

    try:
        config = load_config(ctx.obj["env_file"], termination=policy)
    except ValueError as e:
        raise click.ClickException(str(e))

    registry = _load_registry(registry_path)
    rng = random.Random(seed)

    click.echo(f"Intent {intent_id}: market {_format_apy(market_apy)}, floor {_format_apy(min_apy)}")

    if fast:
        timer = VirtualTimer()
        controller = CompetitionController(registry, config, timer=timer, rng=rng)
        try:
            handle = controller.start(intent_id, min_apy=min_apy, market_apy=market_apy)
        except CompetitionError as e:
            raise click.ClickException(str(e))
        handle.subscribe(_echo_change)
        timer.run_until_idle()
        final = handle.competition
    else:
        async def run():
            controller = CompetitionController(registry, config, timer=AsyncioTimer(), rng=rng)
            with controller:
                handle = controller.start(intent_id, min_apy=min_apy, market_apy=market_apy)
                handle.subscribe(_echo_change)
                return await handle.wait()

        try:
            final = asyncio.run(run())
        except CompetitionError as e:
            raise click.ClickException(str(e))
        except KeyboardInterrupt:
            logger.warning("Round interrupted")
            raise click.Abort()

    winner = final.winning_bid
    if winner is None:
        click.echo(f"No winner ({final.status.name})")
        return

    duration = (final.ended_at or final.started_at) - final.started_at
    click.echo(
        f"Winner: {winner.solver_name or winner.solver_id} with {_format_apy(winner.apy)} "
        f"after {final.arrival_count} bids in {duration:.1f}s"
    )


@cli.command("stats")
@click.option("--rounds", type=int, default=20, help="Number of simulated rounds")
@click.option("--market-apy", type=float, default=0.10, help="Direct deposit yield (fraction)")
@click.option("--seed", type=int, default=None, help="Random seed")
@click.option("--registry", "registry_path", default=None, help="JSON solver registry")
@click.pass_context
def stats(ctx, rounds, market_apy, seed, registry_path):
    """Simulate many rounds and print per-solver results"""
    from yieldrace.core.config import load_config
    from yieldrace.core.competition import (
        CompetitionController,
        CompetitionError,
        SolverStatsTracker,
        VirtualTimer,
    )

    try:
        config = load_config(ctx.obj["env_file"])
    except ValueError as e:
        raise click.ClickException(str(e))

    registry = _load_registry(registry_path)
    timer = VirtualTimer()
    controller = CompetitionController(registry, config, timer=timer, rng=random.Random(seed))
    tracker = SolverStatsTracker()

    with click.progressbar(range(rounds), label="Simulating rounds") as bar:
        for i in bar:
            try:
                handle = controller.start(f"intent-{i}", market_apy=market_apy)
            except CompetitionError as e:
                raise click.ClickException(str(e))
            tracker.attach(handle)
            timer.run_until_idle()

    click.echo(f"\n{'Solver':<12} {'Bids':>5} {'Wins':>5} {'Avg APY':>9} {'Win rate':>9}")
    for s in tracker.leaderboard():
        click.echo(
            f"{s.solver_id:<12} {s.total_bids:>5} {s.winning_bids:>5} "
            f"{_format_apy(s.average_apy):>9} {s.win_rate * 100:>8.1f}%"
        )


if __name__ == "__main__":
    cli()
