[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sonar"
version = "0.1.0"
description = "Modern ping: ICMP echo with optional whois and geolocation lookup"
requires-python = ">=3.10"
dependencies = [
    "rich",
]
keywords = ["ping", "icmp", "whois", "geolocation", "network", "monitoring"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Monitoring",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
sonar = "sonar.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["sonar"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
