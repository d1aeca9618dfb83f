[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tinywasm"
version = "0.1.0"
description = "Data model and runtime storage for a small WebAssembly interpreter"
requires-python = ">=3.10"
dependencies = []
keywords = ["webassembly", "wasm", "interpreter", "runtime", "bytecode"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Interpreters",
]

[project.optional-dependencies]
test = ["pytest", "hypothesis"]

[tool.hatch.build.targets.wheel]
packages = ["tinywasm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
strict = true
