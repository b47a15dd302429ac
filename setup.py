"""StepChain Package Setup"""

from setuptools import find_packages, setup

setup(
    name="stepchain",
    version="0.1.0",
    description="Sequential asynchronous chain orchestration with pluggable step schedulers",
    author="StepChain Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "httpx>=0.24.0",
        "pydantic>=2.0",
        "python-dotenv>=1.0",
        "structlog>=23.1",
        "opentelemetry-api>=1.20",
        "opentelemetry-sdk>=1.20",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-asyncio",
        ],
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "stepchain=stepchain.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
)
