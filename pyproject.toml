[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "eipsec"
version = "0.1.0"
description = "Embedded IPsec building blocks: IP, AH and ESP header codecs, replay windows, policy and association records, and simulated network devices"
requires-python = ">=3.10"
dependencies = []
keywords = ["ipsec", "esp", "ah", "networking", "security-policy", "replay-window", "checksum"]
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
    "Topic :: System :: Networking",
    "Topic :: Security",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["eipsec"]

[tool.pytest.ini_options]
addopts = "-ra"
