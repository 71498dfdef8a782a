"""API Gateway authorizer lifecycle conformance tester."""

__version__ = "1.0.0"
