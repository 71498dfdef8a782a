"""
Authorizer conformance runner

Runs the API Gateway authorizer acceptance cases against a live AWS account.
Every case provisions its own stack and tears it down afterwards.

Usage: authorizer-conformance --region eu-west-1 --case basic --case disappears
"""

import logging
import sys

from concurrent.futures import ThreadPoolExecutor

import click

from apigw_authorizer_conformance.cases import CASES, build_case
from apigw_authorizer_conformance.context import ConformanceContext
from apigw_authorizer_conformance.schemas.authorizer_vars import ConformanceVars
from apigw_authorizer_conformance.utils import load_conformance_vars
from apigw_authorizer_conformance.verifier import CaseResult, LifecycleVerifier

LOGGER = logging.getLogger("apigw_authorizer_conformance")


def run_case(name: str, conformance_vars: ConformanceVars) -> CaseResult:
    """Runs one case with its own context, so cases share no clients."""
    context = ConformanceContext.from_vars(conformance_vars)
    return LifecycleVerifier(context).run(build_case(name, conformance_vars))


def format_result(result: CaseResult) -> str:
    if result.passed:
        return f"✓ {result.name}: passed ({result.steps_run} steps)"
    line = f"✗ {result.name}: failed after {result.steps_run} steps: {result.failure}"
    if result.cleanup_error is not None:
        line += f"\n  cleanup also failed: {result.cleanup_error}"
    return line


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, readable=True),
    help="Path to the YAML configuration file",
)
@click.option("--region", help="AWS Region, overrides the configuration file")
@click.option(
    "--case",
    "case_names",
    multiple=True,
    type=click.Choice(sorted(CASES)),
    help="Case to run, repeatable. All cases run when omitted",
)
@click.option("--parallel", default=1, show_default=True, type=click.IntRange(min=1), help="Cases run at once")
@click.option("-v", "--verbose", is_flag=True, help="Log debug messages")
def main(  # noqa: FBT001
    config_path: str | None, region: str | None, case_names: tuple[str, ...], parallel: int, verbose: bool
):
    """
    Parameters:
        config_path (str | None): YAML configuration file (optional)
        region (str | None): AWS region (optional, AWS_REGION is used otherwise)
        case_names (tuple[str, ...]): Cases to run, all when empty
        parallel (int): Number of cases running at the same time
        verbose (bool): Log debug messages

    Functionality:
        - Loads and validates the configuration
        - Runs every selected case in a thread pool, each with its own boto3 session
        - Prints one line per case and exits with status 1 if any case failed
    """

    try:
        conformance_vars = load_conformance_vars(config_path, region=region)
    except ValueError as e:
        raise click.UsageError(f"Invalid configuration: {e}") from e

    logging.basicConfig(
        level=logging.DEBUG if verbose else conformance_vars.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    names = list(case_names) or sorted(CASES)
    LOGGER.info("Running %d case(s) in %s", len(names), conformance_vars.region)

    with ThreadPoolExecutor(max_workers=parallel) as executor:
        results = list(executor.map(lambda name: run_case(name, conformance_vars), names))

    for result in results:
        click.echo(format_result(result))

    if not all(result.passed for result in results):
        sys.exit(1)


if __name__ == "__main__":
    main()
