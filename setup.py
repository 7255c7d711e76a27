# setup.py
from setuptools import setup, find_packages

setup(
    name="aibridge",
    version="0.1.0",
    description="Stage project files for an external AI chat and apply its JSON-encoded edits back to the project.",
    author="Your Name or Team",
    author_email="your_email@example.com",
    packages=find_packages(include=['aibridge', 'aibridge.*']),
    include_package_data=True,
    package_data={
        'aibridge': ['templates/*.j2'],
    },
    install_requires=[
        "click>=8.0",
        "pyyaml",
        "jinja2",
        "rich",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'aibridge = aibridge.cli:cli',
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Build Tools",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
    ],
)
