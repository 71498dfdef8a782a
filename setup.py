"""A setuptools based setup module.

See:
https://packaging.python.org/en/latest/distributing.html
"""

from setuptools import find_packages, setup

setup(
    name="apigw-authorizer-conformance",
    version="1.0.0",
    description="Lifecycle conformance tests for API Gateway authorizers managed as infrastructure as code.",
    long_description="Applies CDK generated configurations of an API Gateway authorizer through CloudFormation \n"
    "and verifies remote and tracked state after every step: update in place, import, drift, destroy.",
    license="MIT",
    package_dir={"": "."},
    packages=find_packages(where=".", include=["apigw_authorizer_conformance", "apigw_authorizer_conformance.*"]),
    install_requires=[
        "aws-cdk-lib>=2.177.0",
        "constructs>=10.4.2",
        "boto3>=1.35.0",
        "botocore>=1.35.0",
        "pydantic>=2.9.0",
        "pydantic-core>=2.23.0",
        "pyyaml>=6.0.0",
        "tenacity>=8.0.1",
        "click>=8.1.3",
        "typeguard~=2.13.3",
    ],
    extras_require={
        "test": ["pytest>=8.0.0"],
    },
    entry_points={
        "console_scripts": ["authorizer-conformance=apigw_authorizer_conformance.cli:main"],
    },
    python_requires=">=3.11",
)
