# Copyright (C) 2023 Leiden University Medical Center
# This file is part of readwatch
#
# readwatch is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# readwatch is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with readwatch.  If not, see <https://www.gnu.org/licenses/

from setuptools import find_packages, setup

setup(
    name="readwatch",
    version="0.1.0",
    description="Live read quality and read length histograms for "
                "streamed sequencing data.",
    author="Leiden University Medical Center",
    license="AGPL-3.0-or-later",
    python_requires=">=3.8",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "tqdm>=4.60.0",
        "pygal>=3.0.0",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "readwatch=readwatch.__main__:main",
            "readwatch-report=readwatch.__main__:readwatch_report",
        ]
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
        "License :: OSI Approved :: "
        "GNU Affero General Public License v3 or later (AGPLv3+)",
    ],
)
