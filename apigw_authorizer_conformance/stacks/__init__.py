"""CDK stacks holding the authorizer under test."""
