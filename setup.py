"""
ORDEX setup script.
"""

from setuptools import setup, find_packages

setup(
    name="ordex",
    version="1.0.0",
    description="Order intake: content classification, LLM extraction and canonical code matching",
    packages=find_packages(include=["ordex", "ordex.*"]),
    package_data={
        "ordex": ["prompts/*.yaml"],
        "ordex.config": ["*.yaml"],
    },
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        'pyyaml',
        'sqlalchemy>=2.0',
        'pydantic>=2.0',
        'jinja2',
        'python-dotenv',
        'click',
        'httpx',
        'openai>=1.0',
        'anthropic>=0.34.0',
        'google-genai',
        'beautifulsoup4',
        'lxml',
        'pdf2image',
        'Pillow',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio',
        ],
    },
    entry_points={
        'console_scripts': [
            'ordex=ordex.cli:cli',
        ],
    },
)
