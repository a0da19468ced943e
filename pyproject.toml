[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mailtemp"
version = "0.1.0"
description = "Temporary mailbox service with a built-in SMTP receiver, verification-code extraction and a JSON API"
requires-python = ">=3.10"
keywords = ["email", "smtp", "temporary-mail", "disposable-email", "verification-code"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Email :: Mail Transport Agents",
]
dependencies = [
    "flask",
    "redis",
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
mailtemp = "mailtemp.app:main"

[tool.hatch.build.targets.wheel]
packages = ["mailtemp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
