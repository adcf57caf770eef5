[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pyew"
version = "0.1.0"
description = "A lightweight database client core: a local store of workspaces and saved connections, and SQL access to MySQL servers."
requires-python = ">=3.10"
keywords = ["database", "sql", "sqlite", "mysql", "client", "workspace", "migrations"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Front-Ends",
]
dependencies = [
    "pymysql",
    "platformdirs",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
pyew = "pyew.app:main"
pyew-migrate = "pyew.migrations:main"

[tool.hatch.build.targets.wheel]
packages = ["pyew"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
