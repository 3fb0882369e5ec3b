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

import dataclasses
import html
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Sequence, Type

import pygal  # type: ignore
import pygal.style  # type: ignore

from ._version import __version__
from .stats import DEFAULT_BIN_COUNT, ReadStats

ONE_SERIE_STYLE = pygal.style.DefaultStyle(colors=("#33cc33",))  # Green

COMMON_GRAPH_OPTIONS = dict(
    truncate_label=-1,
    width=1000,
    explicit_size=True,
    disable_xml_declaration=True,
    js=[],  # Script is globally downloaded once
)


def label_values(values: Sequence[Any], labels: Sequence[Any]):
    if len(values) != len(labels):
        raise ValueError("labels and values should have the same length")
    return [{"value": value, "label": label} for value, label
            in zip(values, labels)]


@dataclasses.dataclass
class ReportModule(ABC):
    @classmethod
    def from_dict(cls, d: Dict[str, Any]):
        return cls(**d)

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    @abstractmethod
    def to_html(self) -> str:
        pass


@dataclasses.dataclass
class Summary(ReportModule):
    format: str
    total_reads: int
    total_bases: int
    mean_length: float
    minimum_length: int
    maximum_length: int
    n50: int
    mean_quality: float

    def to_html(self) -> str:
        return f"""
            <h2>Summary</h2>
            <table>
            <tr><td>Format</td><td align="right">{self.format}</td></tr>
            <tr><td>Total reads</td><td align="right">
                {self.total_reads:,}</td></tr>
            <tr><td>Total bases</td><td align="right">
                {self.total_bases:,}</td></tr>
            <tr><td>Mean length</td><td align="right">
                {self.mean_length:,.2f}</td></tr>
            <tr><td>Length range (min-max)</td><td align="right">
                {self.minimum_length:,} - {self.maximum_length:,}</td></tr>
            <tr><td>N50</td><td align="right">{self.n50:,}</td></tr>
            <tr><td>Mean read quality</td><td align="right">
                {self.mean_quality:.2f}</td></tr>
            </table>
        """

    @classmethod
    def from_read_stats(cls, stats: ReadStats, format: str):
        return cls(format=format, **dataclasses.asdict(stats.summary()))


@dataclasses.dataclass
class HistogramModule(ReportModule):
    labels: List[str]
    counts: List[int]

    title = ""
    x_title = ""

    def plot(self) -> str:
        plot = pygal.Bar(
            title=self.title,
            x_title=self.x_title,
            y_title="number of reads",
            x_labels=self.labels,
            x_label_rotation=30,
            style=ONE_SERIE_STYLE,
            **COMMON_GRAPH_OPTIONS,
        )
        plot.add("", label_values(self.counts, self.labels))
        return plot.render(is_unicode=True)

    def to_html(self) -> str:
        if not self.counts:
            return f"""
                <h2>{self.title}</h2>
                No reads were analyzed.
            """
        return f"""
            <h2>{self.title}</h2>
            <figure>
            {self.plot()}
            </figure>
        """


@dataclasses.dataclass
class ReadQualityDistribution(HistogramModule):
    title = "Read quality distribution"
    x_title = "average read quality"

    @classmethod
    def from_read_stats(cls, stats: ReadStats,
                        bin_count: int = DEFAULT_BIN_COUNT):
        if stats.number_of_reads == 0:
            return cls([], [])
        labels, counts = zip(*stats.quality_histogram(bin_count))
        return cls(list(labels), list(counts))


@dataclasses.dataclass
class ReadLengthDistribution(HistogramModule):
    title = "Read length distribution"
    x_title = "read length"

    @classmethod
    def from_read_stats(cls, stats: ReadStats,
                        bin_count: int = DEFAULT_BIN_COUNT):
        if stats.number_of_reads == 0:
            return cls([], [])
        labels, counts = zip(*stats.length_histogram(bin_count))
        return cls(list(labels), list(counts))


NAME_TO_CLASS: Dict[str, Type[ReportModule]] = {
    "summary": Summary,
    "read_quality_distribution": ReadQualityDistribution,
    "read_length_distribution": ReadLengthDistribution,
}

CLASS_TO_NAME: Dict[Type[ReportModule], str] = {
    value: key for key, value in NAME_TO_CLASS.items()}


def report_modules_to_dict(report_modules: Iterable[ReportModule]):
    return {
        "meta": {"readwatch_version": __version__},
        **{CLASS_TO_NAME[type(module)]: module.to_dict()
           for module in report_modules}
    }


def dict_to_report_modules(d: Dict[str, Dict[str, Any]]
                           ) -> List[ReportModule]:
    return [NAME_TO_CLASS[name].from_dict(class_dict)
            for name, class_dict in d.items() if name in NAME_TO_CLASS]


def calculate_stats(stats: ReadStats, format: str,
                    bin_count: int = DEFAULT_BIN_COUNT) -> List[ReportModule]:
    return [
        Summary.from_read_stats(stats, format),
        ReadQualityDistribution.from_read_stats(stats, bin_count),
        ReadLengthDistribution.from_read_stats(stats, bin_count),
    ]


def write_html_report(report_modules: Iterable[ReportModule],
                      html_path: str,
                      filename: str):
    default_config = pygal.Config()
    with open(html_path, "wt", encoding="utf-8") as html_file:
        html_file.write(f"""
            <html>
            <head>
                <script type="text/javascript"
                    src="https://{default_config.js[0].lstrip('/')}"></script>
                <meta http-equiv="content-type"
                content="text/html:charset=utf-8">
                <title>{html.escape(filename)}: readwatch report</title>
            </head>
            <h1>readwatch report</h1>
            input: {html.escape(filename)}<br>
        """)
        for module in report_modules:
            html_file.write(module.to_html())
        html_file.write("</html>")
