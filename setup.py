# setup.py
from setuptools import setup, find_packages

setup(
    name="adaptcoder-project",
    version="0.1.0",
    description="Self-patching assistant: turns natural-language feature requests into textual source patches, "
                "composed of the adaptcoder, patchflow and treecontext libraries.",
    author="AdaptCoder Team",
    author_email="team@adaptcoder.dev",
    # 三个顶级包位于同一目录，显式列出
    packages=find_packages(include=['adaptcoder', 'adaptcoder.*', 'patchflow', 'patchflow.*', 'treecontext', 'treecontext.*']),

    include_package_data=True,
    package_data={
        'adaptcoder': ['prompts/*.j2'],
    },
    install_requires=[
        "click>=8.0",
        "pyyaml",
        "jinja2",
        "rich",
        "httpx",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        'console_scripts': [
            'adaptcoder = adaptcoder.cli:cli',
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Code Generators",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
