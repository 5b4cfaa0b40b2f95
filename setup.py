"""
setup.py

Packaging metadata and CLI entry point for sprint-export.

Version: 0.1.0. Export pipeline for sprint review presentations: PDF, HTML,
Markdown, metrics, executive and digest renderers behind a cached, retrying
orchestrator, with a click CLI and a FastAPI service.
"""
from setuptools import setup, find_packages

setup(
    name="sprint-export",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={
        "sprint_export.renderers": ["templates/*.j2", "templates/*.css"],
    },
    include_package_data=True,
    install_requires=[
        "click",
        "pydantic>=2.0",
        "pyyaml",
        "python-dotenv",
        "jinja2",
        "markupsafe",
        "reportlab",
        "httpx",
        "fastapi",
        "uvicorn",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "hypothesis",
        ],
    },
    entry_points={
        "console_scripts": [
            "sprint-export=cli:cli",
        ],
    },
    python_requires=">=3.10",
)
