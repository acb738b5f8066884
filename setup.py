from setuptools import find_packages, setup

setup(
    name="gitlab-config",
    version="0.1.0",
    license="Apache License 2.0",

    python_requires=">=3.11",
    description="Manage the configuration of a GitLab project as an annotated "
                "YAML document, using GitLab's API documentation as schema.",

    packages=find_packages(exclude=('gitlab_config.test',
                                    'gitlab_config.test.*')),

    install_requires=[
        "sretoolbox~=2.5",
        "Click>=7.0,<9.0",
        "toml>=0.10.0,<0.11.0",
        "python-gitlab>=4.0,<7.0",
        "ruamel.yaml>=0.17.22,<0.19.0",
        "requests>=2.28,<3.0",
        "pydantic>=2.0,<3.0",
    ],

    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-mock>=3.10",
        ],
    },

    classifiers=[
        'Development Status :: 2 - Pre-Alpha',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.11',
    ],
    entry_points={
        'console_scripts': [
            'gitlab-config = gitlab_config.cli:root',
        ],
    },
)
