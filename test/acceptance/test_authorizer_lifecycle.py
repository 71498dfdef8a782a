# -*- coding: utf-8 -*-
"""Run the authorizer cases against a live AWS account.

Set AUTHORIZER_CONFORMANCE_ACC=1 and AWS credentials to run them. The
region comes from AUTHORIZER_CONFORMANCE_CONFIG, a YAML file, or from
AWS_REGION.
"""
import os

import pytest

from apigw_authorizer_conformance.cases import CASES
from apigw_authorizer_conformance.cli import run_case
from apigw_authorizer_conformance.utils import load_conformance_vars

pytestmark = pytest.mark.skipif(
    os.environ.get("AUTHORIZER_CONFORMANCE_ACC") != "1", reason="AUTHORIZER_CONFORMANCE_ACC=1 is not set"
)


@pytest.fixture(scope="module")
def conformance_vars():
    """Returns the configuration of the live run."""
    return load_conformance_vars(os.environ.get("AUTHORIZER_CONFORMANCE_CONFIG"))


@pytest.mark.parametrize("case_name", sorted(CASES))
# pylint: disable=redefined-outer-name
def test_authorizer_lifecycle(case_name, conformance_vars):
    """Test a full authorizer lifecycle, ending with a verified destroy."""
    result = run_case(case_name, conformance_vars)

    result.raise_for_failure()
    assert result.passed
    if result.cleanup_error is not None:
        raise result.cleanup_error
