from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

import rich_click as click

from keel.core.enums import Commitment, FailureActionEnum

if TYPE_CHECKING:
    from keel.config import KeelConfig
    from keel.testing.runner import Scenario, ScenarioReport


_status_styles = {
    "passed": "green",
    "failed": "red",
    "skipped": "yellow",
}


async def run_scenario_files(
    config: KeelConfig,
    scenarios: Sequence[Scenario],
    *,
    default_action: Optional[FailureActionEnum] = None,
    commitment: Optional[Commitment] = None,
) -> List[ScenarioReport]:
    from keel.development.chain_interfaces import RpcChainInterface
    from keel.testing.runner import ScenarioRunner, run_scenarios

    from .console import console

    async with RpcChainInterface.connect(config) as chain:
        runner = ScenarioRunner.from_config(
            chain, config, default_action=default_action, commitment=commitment
        )
        with console.status(f"Running {len(scenarios)} scenario(s) against {chain.url}"):
            return await run_scenarios(runner, scenarios)


def print_report(report: ScenarioReport) -> None:
    from rich.markup import escape
    from rich.table import Table

    from .console import console

    table = Table(title=f"Scenario {escape(report.name)}")
    table.add_column("Step")
    table.add_column("Status")
    table.add_column("Attempts", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Error")

    for result in report.results:
        style = _status_styles[str(result.status)]
        table.add_row(
            escape(result.name),
            f"[{style}]{result.status}[/{style}]",
            str(result.attempts),
            f"{result.duration:.2f}s",
            result.error_kind or "",
        )
    console.print(table)

    for result in report.failed:
        console.print(
            f"[red]Step '{escape(result.name)}' failed with {result.error_kind}:[/red]"
        )
        console.print(result.detail, markup=False, highlight=False)
        for signature in result.signatures:
            console.print(f"  signature {signature}", markup=False, highlight=False)
        for line in result.logs:
            console.print(f"  {line}", markup=False, highlight=False)


@click.command(name="run")
@click.argument(
    "paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False)
)
@click.option("--url", "-u", type=str, default=None, help="JSON-RPC endpoint URL.")
@click.option(
    "--commitment",
    type=click.Choice([str(c) for c in Commitment]),
    default=None,
    help="Commitment level required to consider a transaction confirmed.",
)
@click.option(
    "--continue-on-failure",
    is_flag=True,
    default=False,
    help="Continue with the next steps when a step without an explicit policy fails.",
)
@click.pass_context
def run_run(
    ctx: click.Context,
    paths: Tuple[str, ...],
    url: Optional[str],
    commitment: Optional[str],
    continue_on_failure: bool,
) -> None:
    """Run scenario files concurrently."""
    import asyncio
    import sys

    from rich.markup import escape

    from keel.config import KeelConfig
    from keel.scenario import ScenarioFileError, load_scenario
    from keel.testing.exceptions import ScenarioConflictError

    from .console import console

    config = KeelConfig(local_config_path=ctx.obj.get("local_config_path", None))
    config.load_configs()
    if url is not None:
        config.set_rpc_url(url)

    try:
        scenarios = [load_scenario(path) for path in paths]
    except ScenarioFileError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)

    try:
        reports = asyncio.run(
            run_scenario_files(
                config,
                scenarios,
                default_action=FailureActionEnum.CONTINUE
                if continue_on_failure
                else None,
                commitment=Commitment(commitment) if commitment is not None else None,
            )
        )
    except ScenarioConflictError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)

    for report in reports:
        print_report(report)

    sys.exit(0 if all(report.passed for report in reports) else 1)
