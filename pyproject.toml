[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "labelplatform"
version = "0.1.0"
description = "HTTP API for an image labelling platform: uploads, ground truth, model prediction queues and result webhooks"
requires-python = ">=3.10"
keywords = ["labelling", "images", "annotation", "flask", "object-storage", "redis", "queue"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "flask>=2.3",
    "sqlalchemy>=2.0",
    "redis>=5.0",
    "httpx>=0.25",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "respx>=0.20",
]

[tool.hatch.build.targets.wheel]
packages = ["labelplatform"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
