from setuptools import find_packages, setup

setup(
    name="oktaguard",
    version="0.7.0",
    description="Verify Okta-issued access and ID tokens against the issuer's published JWKS",
    author="oktaguard maintainers",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.11",
    install_requires=[
        # HTTP client dependencies
        "httpx>=0.25.0",
        # Logging dependencies
        "structlog>=23.2.0",
        "python-json-logger>=2.0.7",
        # Telemetry dependencies
        "opentelemetry-api>=1.28.0",
        # Auth dependencies
        "pyjwt[crypto]>=2.8.0",
        "cryptography>=41.0.0",
        # Config dependencies
        "pydantic>=2.10.0",
        "pydantic-settings>=2.7.0",
    ],
    extras_require={
        "fastapi": [
            "fastapi>=0.110.0",
        ],
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.23.0",
            "respx>=0.21.0",
            "fastapi>=0.110.0",
        ],
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.23.0",
            "respx>=0.21.0",
            "fastapi>=0.110.0",
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.11",
    ],
)
