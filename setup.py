from setuptools import setup, find_namespace_packages

setup(
    name="boardgame_recommender",
    version="0.1.0",
    description="Photo-based board game identification and streamed, preference-filtered game recommendations.",
    author="Your Name",
    author_email="your@email.com",
    url="https://github.com/yourusername/boardgame-recommender",
    packages=find_namespace_packages(include=["src", "src.*"]),
    include_package_data=True,
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "openai>=1.0",
        "requests",
        "streamlit>=1.27",
        "PyYAML",
        "python-dotenv",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx",
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
