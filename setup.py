"""Setup configuration for envreport"""

from setuptools import setup, find_packages

setup(
    name="ado-environment-reporter",
    version="0.1.0",
    description=(
        "HTTP API that aggregates Azure DevOps environments, deployments, "
        "builds and variable groups into environment reports."
    ),
    author="ADO Environment Reporter Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
        "fastapi>=0.100.0",
        "pydantic>=2.0",
        "uvicorn>=0.22.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "httpx>=0.24.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "envreport=envreport.main:main",
        ],
    },
)
