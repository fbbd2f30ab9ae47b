[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gomapper"
version = "0.1.0"
description = "Generate type-safe struct mapping functions from Go struct definitions"
requires-python = ">=3.10"
keywords = ["go", "golang", "code generation", "struct mapping", "dto", "go generate"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Code Generators",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
gomapper = "gomapper.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["gomapper"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
strict = true
