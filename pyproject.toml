[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "stormweaver"
version = "1.0.1"
description = "Concurrent randomized SQL workload generation with tracked schema metadata"
requires-python = ">=3.10"
dependencies = [
    "pymysql",
]
keywords = ["database", "stress-testing", "sql", "ddl", "dml", "workload", "concurrency"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Software Development :: Testing :: Traffic Generation",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["stormweaver"]

[tool.pytest.ini_options]
addopts = "-ra"
