[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tlsscope"
version = "0.1.0"
description = "Spot TLS records in Ethernet frames on the HTTPS ports and decrypt AES-128-GCM application data with known session keys"
requires-python = ">=3.10"
keywords = ["tls", "ssl", "packet", "capture", "network", "monitoring", "decryption", "aes-gcm"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Monitoring",
    "Topic :: Security :: Cryptography",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
tlsscope-mvp = "tlsscope.mvp:main"

[tool.hatch.build.targets.wheel]
packages = ["tlsscope"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
