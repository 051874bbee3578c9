"""
Setup configuration for the Break It Down package
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="break-it-down",
    version="1.0.0",
    author="Break It Down Contributors",
    description="A personal task tracker with a server-rendered web UI and JSON API",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["break_it_down", "break_it_down.*", "ui", "ui.*"]),
    py_modules=["start_ui"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "Topic :: Office/Business :: Scheduling",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.100",
        "uvicorn[standard]>=0.23",
        "httpx>=0.24",
        "pydantic>=2.0",
        "python-dotenv>=1.0",
        "python-multipart>=0.0.6",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
            "black>=23.0",
            "flake8>=6.0",
            "mypy>=1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "break-it-down=start_ui:main",
        ],
    },
)
