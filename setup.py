from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="golobe-e2e",
    version="1.0.0",
    description="End-to-end browser verification harness for the Golobe travel booking app",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["golobe_e2e", "golobe_e2e.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Testing",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.4.0", "pytest-asyncio>=0.23.0"],
    },
    entry_points={
        "console_scripts": [
            "golobe-e2e=golobe_e2e.cli:main",
        ],
    },
)
