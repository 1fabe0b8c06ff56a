"""Test configuration and fixtures."""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from weatherfilter.logging_config import reset_run_logging


BARE_RECORDS = [
    "1961-01-01 06:00:00 -5.0 G\n",
    "1961-01-01 13:00:00 -2.4 G\n",
    "1961-04-02 06:00:00 3.1 G\n",
    "1961-04-02 13:00:00 8.7 G\n",
    "1961-04-03 18:00:00 -0.5 Y\n",
    "1961-05-01 13:00:00 12.0 G\n",
    "1961-05-02 06:00:00 n/a G\n",
]

SMHI_EXPORT = (
    "Stationsnamn;Stationsnummer;Stationsnät;Mäthöjd (meter över marken)\n"
    "Lund;53430;SMHIs stationsnät;2.0\n"
    "\n"
    "Parameternamn;Beskrivning;Enhet\n"
    "Lufttemperatur;momentanvärde, 1 gång/tim;degree celsius\n"
    "\n"
    "Datum;Tid (UTC);Lufttemperatur;Kvalitet;;Tidsutsnitt:\n"
    "1961-01-01;06:00:00;-5.0;G;;Kvalitetskontrollerade historiska data\n"
    "1961-01-01;13:00:00;-2.4;G;;Tidsperiod (fr.o.m.) = 1961-01-01\n"
    "1961-04-02;13:00:00;8.7;G;;\n"
    "1961-04-03;18:00:00;-0.5;Y;;\n"
)


@pytest.fixture(autouse=True)
def _reset_logging():
    """Close run log handlers between tests"""
    yield
    reset_run_logging()


@pytest.fixture
def bare_data_file(tmp_path):
    """Bare data file with a mix of times, months and temperatures"""
    path = tmp_path / "baredata_smhi-opendata.csv"
    path.write_text("".join(BARE_RECORDS), encoding="utf-8")
    return path


@pytest.fixture
def smhi_export_file(tmp_path):
    """Raw SMHI open-data export"""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    path = data_dir / "smhi-opendata_1_53430_20200905_163726.csv"
    path.write_text(SMHI_EXPORT, encoding="utf-8")
    return path


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Empty working directory the CLI runs in"""
    path = tmp_path / "work"
    path.mkdir()
    monkeypatch.chdir(path)
    for var in (
        "WEATHERFILTER_CLEANER",
        "WEATHERFILTER_FILTERS_FILE",
        "WEATHERFILTER_OUTPUT_DIR",
        "WEATHERFILTER_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    return path
