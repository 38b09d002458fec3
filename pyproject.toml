[build-system]
requires = ["hatchling>=1.18"]
build-backend = "hatchling.build"

[project]
name = "steamgifts-bot"
version = "0.1.0"
description = "Building blocks for a multi-account steamgifts.com giveaway bot: page parsing, scoring, configuration, notifications, metrics, state and self-update."
requires-python = ">=3.10"
keywords = ["steamgifts", "giveaways", "bot", "scraper", "automation"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Games/Entertainment",
    "Typing :: Typed",
]
dependencies = [
    "beautifulsoup4>=4.12",
    "pyyaml>=6.0",
    "requests>=2.31",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "responses>=0.24",
]

[tool.hatch.build.targets.wheel]
packages = ["steamgifts_bot"]

[tool.hatch.build.targets.sdist]
include = ["steamgifts_bot", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
