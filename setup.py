"""Setup script for the project."""

from setuptools import setup, find_packages

setup(
    name="fitness-dashboard",
    version="1.0.0",
    description="Personal fitness dashboard: calorie, workout, step and weight tracking",
    packages=find_packages(include=["api", "api.*", "config", "config.*", "models", "models.*",
                                    "schemas", "schemas.*", "services", "services.*", "utils", "utils.*"]),
    install_requires=[
        "fastapi>=0.110",
        "uvicorn[standard]>=0.27",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "motor>=3.3",
        "pymongo>=4.6",
        "bcrypt>=4.1",
        "openpyxl>=3.1",
        "python-multipart>=0.0.9",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "httpx>=0.27",
        ],
    },
    python_requires=">=3.10",
)
