"""
Auswertung der extrahierten Ehrungen: Zusammenfuehren, Excel-Export, HTML-Dashboard.
"""

from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass
from html import escape
from pathlib import Path
from string import Template
from typing import Any, Dict, Iterable, List, Sequence, Tuple

import pandas as pd

SHEET_NAME = "Ehrungen"
COLUMN_WIDTHS = {"Name": 30, "Geschlecht": 12, "Ehrung": 50, "URL": 80, "Jahr": 8}
GENDER_LABELS = {"female": "Weiblich", "male": "Männlich"}
_YEAR = re.compile(r"(\d{4})")


@dataclass
class PersonRecord:
    name: str
    gender: str
    honor: str
    url: str
    title: str
    year: str


def extract_year(filename: str) -> str:
    match = _YEAR.search(Path(filename).name)
    return match.group(1) if match else "unknown"


def is_honor_record(record: Dict[str, Any]) -> bool:
    return bool(record.get("isEhrung")) and bool(record.get("persons"))


def flatten_persons(records: Iterable[Dict[str, Any]], year: str) -> List[PersonRecord]:
    persons: List[PersonRecord] = []
    for record in records:
        if not is_honor_record(record):
            continue
        for person in record["persons"]:
            persons.append(
                PersonRecord(
                    name=person.get("name", ""),
                    gender=person.get("gender", ""),
                    honor=person.get("honor", ""),
                    url=record.get("url", ""),
                    title=record.get("title") or "",
                    year=year,
                )
            )
    return persons


def merge_and_flatten(files: Sequence[Path]) -> Tuple[List[Dict[str, Any]], List[PersonRecord]]:
    merged: List[Dict[str, Any]] = []
    persons: List[PersonRecord] = []
    for file in files:
        data = json.loads(Path(file).read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValueError(f"{file}: erwartet wird ein JSON-Array")
        merged.extend(data)
        persons.extend(flatten_persons(data, extract_year(str(file))))
    return merged, persons


def persons_frame(persons: Sequence[PersonRecord]) -> pd.DataFrame:
    rows = [
        {
            "Name": p.name,
            "Geschlecht": GENDER_LABELS.get(p.gender, p.gender),
            "Ehrung": p.honor,
            "URL": p.url,
            "Jahr": p.year,
        }
        for p in persons
    ]
    return pd.DataFrame(rows, columns=list(COLUMN_WIDTHS))


def write_excel(persons: Sequence[PersonRecord], path: Path) -> Path:
    frame = persons_frame(persons)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        sheet = writer.sheets[SHEET_NAME]
        for idx, width in enumerate(COLUMN_WIDTHS.values()):
            sheet.column_dimensions[chr(ord("A") + idx)].width = width
    return path


def compute_stats(persons: Sequence[PersonRecord]) -> Dict[str, Dict[str, Any]]:
    stats: Dict[str, Dict[str, Any]] = {"byYear": {}, "byGender": {}, "byHonor": {}, "byYearGender": {}}
    for p in persons:
        stats["byYear"][p.year] = stats["byYear"].get(p.year, 0) + 1
        stats["byGender"][p.gender] = stats["byGender"].get(p.gender, 0) + 1
        stats["byHonor"][p.honor] = stats["byHonor"].get(p.honor, 0) + 1
        bucket = stats["byYearGender"].setdefault(p.year, {"male": 0, "female": 0, "other": 0})
        key = p.gender if p.gender in ("male", "female") else "other"
        bucket[key] += 1
    return stats


def _script_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False).replace("</", "<\\/")


def _options(values: Iterable[str]) -> str:
    return "".join(
        f'<option value="{escape(v, quote=True)}">{escape(v)}</option>' for v in sorted(values)
    )


def render_dashboard(persons: Sequence[PersonRecord]) -> str:
    stats = compute_stats(persons)
    return DASHBOARD_TEMPLATE.substitute(
        total=len(persons),
        female=stats["byGender"].get("female", 0),
        male=stats["byGender"].get("male", 0),
        categories=len(stats["byHonor"]),
        year_options=_options(stats["byYear"]),
        honor_options=_options(stats["byHonor"]),
        data_json=_script_json([asdict(p) for p in persons]),
    )


def write_dashboard(persons: Sequence[PersonRecord], path: Path) -> Path:
    Path(path).write_text(render_dashboard(persons), encoding="utf-8")
    return Path(path)


DASHBOARD_TEMPLATE = Template("""<!DOCTYPE html>
<html lang="de">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Kärntner Ehrungen Dashboard</title>
    <script src="https://cdn.tailwindcss.com"></script>
    <script src="https://cdn.jsdelivr.net/npm/chart.js"></script>
    <style>
        .chart-container { position: relative; height: 300px; }
        @media (min-width: 768px) { .chart-container { height: 350px; } }
    </style>
</head>
<body class="bg-gray-100 min-h-screen">
    <div class="container mx-auto px-4 py-8">
        <h1 class="text-3xl font-bold text-gray-800 mb-2">Kärntner Ehrungen Dashboard</h1>
        <p class="text-gray-600 mb-8">Datenanalyse der Ehrungen des Landes Kärnten</p>

        <div class="grid grid-cols-2 md:grid-cols-4 gap-4 mb-8">
            <div class="bg-white rounded-lg shadow p-6">
                <div class="text-3xl font-bold text-blue-600" id="total-count">$total</div>
                <div class="text-gray-500">Gesamt Ehrungen</div>
            </div>
            <div class="bg-white rounded-lg shadow p-6">
                <div class="text-3xl font-bold text-pink-600" id="female-count">$female</div>
                <div class="text-gray-500">Frauen</div>
            </div>
            <div class="bg-white rounded-lg shadow p-6">
                <div class="text-3xl font-bold text-blue-400" id="male-count">$male</div>
                <div class="text-gray-500">Männer</div>
            </div>
            <div class="bg-white rounded-lg shadow p-6">
                <div class="text-3xl font-bold text-green-600" id="category-count">$categories</div>
                <div class="text-gray-500">Kategorien</div>
            </div>
        </div>

        <div class="bg-white rounded-lg shadow p-6 mb-8">
            <h2 class="text-xl font-semibold mb-4">Filter</h2>
            <div class="grid grid-cols-1 md:grid-cols-3 gap-4">
                <div>
                    <label class="block text-sm font-medium text-gray-700 mb-1">Jahr</label>
                    <select id="filter-year" class="w-full border rounded-md p-2">
                        <option value="">Alle Jahre</option>
                        $year_options
                    </select>
                </div>
                <div>
                    <label class="block text-sm font-medium text-gray-700 mb-1">Geschlecht</label>
                    <select id="filter-gender" class="w-full border rounded-md p-2">
                        <option value="">Alle</option>
                        <option value="female">Weiblich</option>
                        <option value="male">Männlich</option>
                    </select>
                </div>
                <div>
                    <label class="block text-sm font-medium text-gray-700 mb-1">Kategorie</label>
                    <select id="filter-honor" class="w-full border rounded-md p-2">
                        <option value="">Alle Kategorien</option>
                        $honor_options
                    </select>
                </div>
            </div>
        </div>

        <div class="grid grid-cols-1 md:grid-cols-2 gap-8 mb-8">
            <div class="bg-white rounded-lg shadow p-6">
                <h2 class="text-xl font-semibold mb-4">Ehrungen pro Jahr</h2>
                <div class="chart-container"><canvas id="chart-year"></canvas></div>
            </div>
            <div class="bg-white rounded-lg shadow p-6">
                <h2 class="text-xl font-semibold mb-4">Geschlechterverteilung</h2>
                <div class="chart-container"><canvas id="chart-gender"></canvas></div>
            </div>
        </div>

        <div class="space-y-8 mb-8">
            <div class="bg-white rounded-lg shadow p-6">
                <h2 class="text-xl font-semibold mb-4">Geschlecht pro Jahr</h2>
                <div class="chart-container"><canvas id="chart-year-gender"></canvas></div>
            </div>
            <div class="bg-white rounded-lg shadow p-6">
                <h2 class="text-xl font-semibold mb-4">Kategorien nach Geschlecht</h2>
                <div id="chart-honor-container" style="position: relative; min-height: 400px;">
                    <canvas id="chart-honor"></canvas>
                </div>
            </div>
        </div>

        <div class="bg-white rounded-lg shadow p-6">
            <h2 class="text-xl font-semibold mb-4">Daten (<span id="filtered-count">$total</span> Einträge)</h2>
            <div class="overflow-x-auto">
                <table class="min-w-full divide-y divide-gray-200">
                    <thead class="bg-gray-50">
                        <tr>
                            <th class="px-4 py-3 text-left text-xs font-medium text-gray-500 uppercase cursor-pointer" data-sort="name">Name ↕</th>
                            <th class="px-4 py-3 text-left text-xs font-medium text-gray-500 uppercase cursor-pointer" data-sort="gender">Geschlecht ↕</th>
                            <th class="px-4 py-3 text-left text-xs font-medium text-gray-500 uppercase cursor-pointer" data-sort="honor">Ehrung ↕</th>
                            <th class="px-4 py-3 text-left text-xs font-medium text-gray-500 uppercase cursor-pointer" data-sort="year">Jahr ↕</th>
                            <th class="px-4 py-3 text-left text-xs font-medium text-gray-500 uppercase">Link</th>
                        </tr>
                    </thead>
                    <tbody id="data-table" class="bg-white divide-y divide-gray-200"></tbody>
                </table>
            </div>
        </div>
    </div>

    <script>
        const allData = $data_json;
        const MALE_COLOR = 'rgba(96, 165, 250, 0.8)';
        const FEMALE_COLOR = 'rgba(244, 114, 182, 0.8)';

        let filteredData = allData.slice();
        let sortColumn = 'year';
        let sortDirection = 'desc';
        let chartYear, chartGender, chartYearGender, chartHonor;

        function esc(value) {
            return String(value == null ? '' : value)
                .replace(/&/g, '&amp;').replace(/</g, '&lt;').replace(/>/g, '&gt;')
                .replace(/"/g, '&quot;').replace(/'/g, '&#39;');
        }

        function years() {
            return Array.from(new Set(allData.map(function (d) { return d.year; }))).sort();
        }

        function countWhere(data, predicate) {
            return data.filter(predicate).length;
        }

        function initCharts() {
            const ys = years();
            chartYear = new Chart(document.getElementById('chart-year').getContext('2d'), {
                type: 'bar',
                data: {
                    labels: ys,
                    datasets: [{
                        label: 'Ehrungen',
                        data: ys.map(function (y) { return countWhere(allData, function (d) { return d.year === y; }); }),
                        backgroundColor: 'rgba(59, 130, 246, 0.8)'
                    }]
                },
                options: { responsive: true, maintainAspectRatio: false, plugins: { legend: { display: false } } }
            });

            chartGender = new Chart(document.getElementById('chart-gender').getContext('2d'), {
                type: 'doughnut',
                data: {
                    labels: ['Männlich', 'Weiblich'],
                    datasets: [{
                        data: [
                            countWhere(allData, function (d) { return d.gender === 'male'; }),
                            countWhere(allData, function (d) { return d.gender === 'female'; })
                        ],
                        backgroundColor: [MALE_COLOR, FEMALE_COLOR]
                    }]
                },
                options: { responsive: true, maintainAspectRatio: false }
            });

            chartYearGender = new Chart(document.getElementById('chart-year-gender').getContext('2d'), {
                type: 'bar',
                data: {
                    labels: ys,
                    datasets: [
                        { label: 'Männlich', data: [], backgroundColor: MALE_COLOR },
                        { label: 'Weiblich', data: [], backgroundColor: FEMALE_COLOR }
                    ]
                },
                options: {
                    responsive: true,
                    maintainAspectRatio: false,
                    scales: { x: { stacked: true }, y: { stacked: true } }
                }
            });
        }

        function updateHonorChart() {
            const byHonor = {};
            filteredData.forEach(function (d) {
                if (!byHonor[d.honor]) { byHonor[d.honor] = { male: 0, female: 0 }; }
                if (d.gender === 'male') { byHonor[d.honor].male++; }
                else if (d.gender === 'female') { byHonor[d.honor].female++; }
            });
            const sorted = Object.keys(byHonor).map(function (honor) {
                const c = byHonor[honor];
                return { honor: honor, male: c.male, female: c.female, total: c.male + c.female };
            }).sort(function (a, b) { return b.total - a.total; });

            document.getElementById('chart-honor-container').style.height = Math.max(400, sorted.length * 25) + 'px';
            if (chartHonor) { chartHonor.destroy(); }
            chartHonor = new Chart(document.getElementById('chart-honor').getContext('2d'), {
                type: 'bar',
                data: {
                    labels: sorted.map(function (h) { return h.honor; }),
                    datasets: [
                        { label: 'Männlich', data: sorted.map(function (h) { return h.male; }), backgroundColor: MALE_COLOR },
                        { label: 'Weiblich', data: sorted.map(function (h) { return h.female; }), backgroundColor: FEMALE_COLOR }
                    ]
                },
                options: {
                    responsive: true,
                    maintainAspectRatio: false,
                    indexAxis: 'y',
                    scales: { x: { stacked: true }, y: { stacked: true } }
                }
            });
        }

        function updateCharts() {
            const ys = years();
            chartYear.data.datasets[0].data = ys.map(function (y) {
                return countWhere(filteredData, function (d) { return d.year === y; });
            });
            chartYear.update();
            chartGender.data.datasets[0].data = [
                countWhere(filteredData, function (d) { return d.gender === 'male'; }),
                countWhere(filteredData, function (d) { return d.gender === 'female'; })
            ];
            chartGender.update();
            chartYearGender.data.datasets[0].data = ys.map(function (y) {
                return countWhere(filteredData, function (d) { return d.year === y && d.gender === 'male'; });
            });
            chartYearGender.data.datasets[1].data = ys.map(function (y) {
                return countWhere(filteredData, function (d) { return d.year === y && d.gender === 'female'; });
            });
            chartYearGender.update();
            updateHonorChart();
        }

        function updateSummary() {
            document.getElementById('total-count').textContent = filteredData.length;
            document.getElementById('female-count').textContent = countWhere(filteredData, function (d) { return d.gender === 'female'; });
            document.getElementById('male-count').textContent = countWhere(filteredData, function (d) { return d.gender === 'male'; });
            document.getElementById('category-count').textContent = new Set(filteredData.map(function (d) { return d.honor; })).size;
        }

        function renderTable() {
            document.getElementById('data-table').innerHTML = filteredData.map(function (d) {
                const female = d.gender === 'female';
                return '<tr class="hover:bg-gray-50">' +
                    '<td class="px-4 py-3 text-sm">' + esc(d.name) + '</td>' +
                    '<td class="px-4 py-3 text-sm"><span class="px-2 py-1 rounded-full text-xs ' +
                    (female ? 'bg-pink-100 text-pink-800' : 'bg-blue-100 text-blue-800') + '">' +
                    (female ? 'W' : 'M') + '</span></td>' +
                    '<td class="px-4 py-3 text-sm">' + esc(d.honor) + '</td>' +
                    '<td class="px-4 py-3 text-sm">' + esc(d.year) + '</td>' +
                    '<td class="px-4 py-3 text-sm"><a href="' + esc(d.url) + '" target="_blank" rel="noopener" ' +
                    'class="text-blue-600 hover:underline" title="' + esc(d.title) + '">→</a></td>' +
                    '</tr>';
            }).join('');
            document.getElementById('filtered-count').textContent = filteredData.length;
        }

        function applyFilters() {
            const year = document.getElementById('filter-year').value;
            const gender = document.getElementById('filter-gender').value;
            const honor = document.getElementById('filter-honor').value;
            filteredData = allData.filter(function (d) {
                if (year && d.year !== year) { return false; }
                if (gender && d.gender !== gender) { return false; }
                if (honor && d.honor !== honor) { return false; }
                return true;
            });
            filteredData.sort(function (a, b) {
                let va = a[sortColumn] || '';
                let vb = b[sortColumn] || '';
                if (sortColumn === 'year') {
                    va = parseInt(va, 10) || 0;
                    vb = parseInt(vb, 10) || 0;
                }
                if (va < vb) { return sortDirection === 'asc' ? -1 : 1; }
                if (va > vb) { return sortDirection === 'asc' ? 1 : -1; }
                return 0;
            });
            renderTable();
            updateCharts();
            updateSummary();
        }

        ['filter-year', 'filter-gender', 'filter-honor'].forEach(function (id) {
            document.getElementById(id).addEventListener('change', applyFilters);
        });
        document.querySelectorAll('th[data-sort]').forEach(function (th) {
            th.addEventListener('click', function () {
                const col = th.dataset.sort;
                if (sortColumn === col) {
                    sortDirection = sortDirection === 'asc' ? 'desc' : 'asc';
                } else {
                    sortColumn = col;
                    sortDirection = 'asc';
                }
                applyFilters();
            });
        });

        initCharts();
        applyFilters();
    </script>
</body>
</html>
""")


__all__ = [
    "PersonRecord",
    "compute_stats",
    "extract_year",
    "flatten_persons",
    "merge_and_flatten",
    "render_dashboard",
    "write_dashboard",
    "write_excel",
]
