[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fabriclog"
version = "0.1.0"
description = "Parse fabric diagnostic logs into nodes, ports and node info, and serve stored results over a small JSON WSGI API."
requires-python = ">=3.10"
keywords = ["logs", "parser", "fabric", "topology", "csv", "wsgi"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Logging",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
]
dependencies = [
    "werkzeug",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["fabriclog"]

[tool.hatch.build.targets.sdist]
include = ["fabriclog", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
