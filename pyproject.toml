[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "flysim"
version = "0.2.2"
description = "Small web applications and API helpers for running Fly-style machines, tenants and LiteFS setups locally"
requires-python = ">=3.10"
keywords = ["fly", "machines", "multi-tenant", "sqlite", "litefs", "flask", "local-development"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
    "Topic :: Software Development :: Testing",
]
dependencies = [
    "flask>=2.2",
    "requests>=2.28",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[project.scripts]
flysim-tenants = "flysim.tenants.app:main"
flysim-production = "flysim.production:main"
flysim-walkthrough = "flysim.walkthrough:main"

[tool.hatch.build.targets.wheel]
packages = ["flysim"]

[tool.hatch.build.targets.sdist]
include = ["flysim", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
ignore_missing_imports = true
