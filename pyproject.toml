[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "shellhist"
version = "0.1.0"
description = "Shell history entry model, encryption, bash/zsh/fish hook setup and client configuration tools"
requires-python = ">=3.10"
dependencies = [
    "cryptography",
]
keywords = ["shell", "history", "bash", "zsh", "fish", "encryption", "configuration"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Shells",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
shellhist = "shellhist.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["shellhist"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
