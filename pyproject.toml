[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "apigate"
version = "2.0.0"
description = "Building blocks for an API gateway: service discovery, load balancing, HTTP client helpers, GraphQL request extraction and HTTP server setup."
requires-python = ">=3.10"
keywords = [
    "api-gateway",
    "proxy",
    "load-balancing",
    "service-discovery",
    "dns-srv",
    "graphql",
    "http",
    "wsgi",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Internet :: WWW/HTTP :: WSGI",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "dnspython",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["apigate"]

[tool.hatch.build.targets.sdist]
include = [
    "apigate",
    "tests",
    "pyproject.toml",
]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
