[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ctrsave"
version = "0.1.0"
description = "Random-access storage layers for 3DS save containers (dual-image, DPFS, AES-CTR) plus DIFI, DIFF and DISA header records and size calculations"
requires-python = ">=3.10"
dependencies = ["cryptography"]
keywords = ["3ds", "save data", "disa", "diff", "difi", "dpfs", "ivfc", "aes-ctr"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["ctrsave"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
