from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="fleet-autoscaler",
    version="0.3.0",
    author="StepScale.io",
    author_email="info@stepscale.io",
    description="Queue-depth driven autoscaler for Cloud Run and ECS worker fleets",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/stepscale/fleet-autoscaler",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["service"],
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
    install_requires=[
        "boto3>=1.26.0",
        "botocore>=1.29.0",
        "retry>=0.9.2",
        "requests>=2.28.0",
        "google-auth>=2.20.0",
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "httpx>=0.24.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "fleet-autoscaler=fleetscaler.main:main",
        ],
    },
)
