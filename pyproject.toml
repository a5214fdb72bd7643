[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "texus"
version = "0.1.0"
description = "Market data collector that pulls spot tickers and candles from the OKX v5 REST API into Redis"
requires-python = ">=3.10"
keywords = ["okx", "candles", "ticker", "redis", "market-data", "order-book", "crypto"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
]
dependencies = [
    "redis",
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
texus = "texus.app:main"

[tool.hatch.build.targets.wheel]
packages = ["texus"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]
