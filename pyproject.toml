[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fakes3"
version = "0.1.0"
description = "An in-memory fake of the Amazon S3 API for tests: storage backend, multipart uploads, XML messages and Signature V4 verification."
requires-python = ">=3.10"
dependencies = [
    "sortedcontainers",
]
keywords = ["s3", "fake", "mock", "testing", "aws", "object-storage", "sigv4"]
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
    "Topic :: Software Development :: Testing :: Mocking",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["fakes3"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
