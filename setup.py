# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Setup configuration for the FlashFusion workflow engine
"""

from setuptools import setup, find_packages

setup(
    name="flashfusion-workflow-engine",
    version="0.1.0",
    description="Workflow execution engine for FlashFusion agent workflows",
    author="Jason Cafarelli",
    package_dir={"": "backend"},
    packages=find_packages("backend", exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
        "pydantic>=2.0.0",
        "httpx>=0.24.0",
        "PyYAML>=6.0",
        "aiofiles>=23.1.0",
        "anthropic>=0.40.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "flashfusion=flashfusion.main:main",
        ]
    },
)
