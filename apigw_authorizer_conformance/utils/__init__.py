"""Helper functions to make your life simple."""

import os
import random

from pathlib import Path

import yaml

from typeguard import typechecked

from apigw_authorizer_conformance.schemas.authorizer_vars import ConformanceVars


@typechecked
def random_with_prefix(prefix: str) -> str:
    """Returns ``<prefix>-<random integer>``, unique enough for resource names in a shared account."""
    return f"{prefix}-{random.SystemRandom().randint(0, 2**63 - 1)}"


def stack_name_for(prefix: str, case_name: str) -> str:
    """Builds a unique CloudFormation stack name for a case.

    Parameters:
      - prefix (str): Stack prefix from the configuration.
      - case_name (str): Name of the case.

    Returns:
      - str: A stack name made of letters, digits and hyphens.
    """

    return random_with_prefix(f"{prefix}-{case_name}".replace("_", "-"))


def load_properties(config_path: str | Path | None = None) -> dict:
    """Loads conformance properties from a YAML file.

    Args:
        config_path (str | Path | None): Path of the YAML file, optional.

    Returns:
        dict: The loaded properties. The region falls back to AWS_REGION and
        AWS_DEFAULT_REGION when the file doesn't set it.
    """

    props: dict = {}
    if config_path is not None:
        with Path(config_path).open(encoding="utf-8") as file:
            props = yaml.safe_load(file) or {}

    if not props.get("region"):
        region = os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION")
        if region:
            props["region"] = region

    return props


def load_conformance_vars(config_path: str | Path | None = None, **overrides) -> ConformanceVars:
    """Loads and validates the conformance configuration.

    Args:
        config_path (str | Path | None): Path of the YAML file, optional.
        overrides: Values taking precedence over the file, None values are ignored.

    Returns:
        ConformanceVars: The validated configuration.
    """

    props = load_properties(config_path)
    props.update({key: value for key, value in overrides.items() if value is not None})
    return ConformanceVars(**props)
