[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "simplesearch"
version = "0.1.0"
description = "A small HTTP product search service backed by Elasticsearch"
requires-python = ">=3.10"
keywords = ["elasticsearch", "search", "http", "flask", "products"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Framework :: Flask",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Indexing/Search",
]
dependencies = [
    "flask",
    "pyyaml",
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
simplesearch = "simplesearch.app:main"

[tool.hatch.build.targets.wheel]
packages = ["simplesearch"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
