# DEPENDENCIES
from setuptools import setup
from setuptools import find_packages


# Read the long description from README.md if it exists

readme_path = "README.md"

try:
    with open(readme_path, "r", encoding="utf-8") as fh:
        long_description = fh.read()

except FileNotFoundError:
    long_description = "Playbook-driven legal clause classification with feedback learning"

setup(name                          = "playbook-clause-engine",
      version                       = "1.0.0",
      author                        = "Satyaki Mitra",
      author_email                  = "satyaki.mitra93@gmail.com",
      description                   = "Classifies contract clauses against a hierarchical negotiation playbook and learns from reviewer feedback.",
      long_description              = long_description,
      long_description_content_type = "text/markdown",
      packages                      = find_packages(exclude = ["tests", "tests.*"]),
      py_modules                    = ["app"],
      classifiers                   = ["Development Status :: 4 - Beta",
                                       "Intended Audience :: Legal Industry",
                                       "License :: OSI Approved :: MIT License",
                                       "Operating System :: OS Independent",
                                       "Programming Language :: Python :: 3",
                                       "Programming Language :: Python :: 3.10",
                                       "Programming Language :: Python :: 3.11",
                                      ],
      python_requires               = ">=3.10",
      install_requires              = ["fastapi>=0.104.1",
                                       "uvicorn[standard]>=0.24.0",
                                       "pydantic>=2.5.0",
                                       "pydantic-settings>=2.1.0",
                                       "sqlalchemy>=2.0.0",
                                       "torch>=2.1.0",
                                       "transformers>=4.35.0",
                                       "sentence-transformers>=2.2.2",
                                       "numpy>=1.24.0",
                                       "requests>=2.31.0",
                                      ],
      extras_require                = {"test"   : ["pytest>=7.4.0", "httpx>=0.25.0"],
                                       "dev"    : ["black>=23.10.0", "isort>=5.12.0", "flake8>=6.0.0", "pytest>=7.4.0", "httpx>=0.25.0"],
                                       "openai" : ["openai>=1.0.0"], # Optional OpenAI support
                                      },
      entry_points                  = {"console_scripts": ["playbook-clause-engine=app:main"]},
      include_package_data          = True,
     )
