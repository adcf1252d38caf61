[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "burrowhttp"
version = "1.0.0"
description = "HTTP API for a Kafka consumer lag monitor: cluster, topic and consumer views, configuration views and Prometheus metrics"
requires-python = ">=3.10"
dependencies = []
keywords = ["kafka", "consumer", "lag", "monitoring", "http", "wsgi", "prometheus", "metrics"]
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
    "Topic :: System :: Monitoring",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["burrowhttp"]

[tool.hatch.build.targets.sdist]
include = ["burrowhttp", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
