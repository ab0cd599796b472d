"""
Tests for the MaxMind and IP2Location database readers
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from geoip_api.providers import DatabaseLoadError, IP2LocationDb, MaxMindDb
from geoip_api.providers.ip2location import load_subdivision_csv
from geoip_api.schemas.options import IP2LocationOptions, MaxMindOptions

MAXMIND_RECORD = {
    "continent": {"code": "NA"},
    "country": {"iso_code": "US", "names": {"en": "United States"}},
    "subdivisions": [{"iso_code": "CA", "names": {"en": "California"}}],
    "city": {"names": {"en": "Mountain View"}},
}

SUBDIVISION_CSV = (
    '"country_code","subdivision_name","code"\n'
    '"US","California","US-CA"\n'
    '"US","New York","US-NY"\n'
    '"GB","England","GB-ENG"\n'
    '"FR","Île-de-France","FR-IDF"\n'
)

UNAVAILABLE = "This parameter is unavailable for selected data file. Please upgrade the data file."


def ip2location_record(**fields):
    record = {
        "ip": "8.8.8.8",
        "country_short": "US",
        "country_long": "United States of America",
        "region": "California",
        "city": "Mountain View",
        "isp": UNAVAILABLE,
        "latitude": 37.40599,
        "longitude": -122.078514,
        "zipcode": None,
    }
    record.update(fields)
    return SimpleNamespace(**record)


class TestMaxMindDb:
    """Test MaxMind reader"""

    @pytest.fixture
    def reader(self):
        with patch("geoip_api.providers.maxmind.maxminddb.open_database") as open_database:
            mock_reader = MagicMock()
            mock_reader.get.return_value = MAXMIND_RECORD
            open_database.return_value = mock_reader
            yield open_database, mock_reader

    def test_opens_database_once(self, reader):
        open_database, mock_reader = reader
        db = MaxMindDb(MaxMindOptions(db_path="/data/GeoLite2-City.mmdb"))

        asyncio.run(db.get("8.8.8.8"))
        asyncio.run(db.get("8.8.4.4"))

        open_database.assert_called_once_with("/data/GeoLite2-City.mmdb")
        assert mock_reader.get.call_count == 2

    def test_get_record(self, reader):
        db = MaxMindDb(MaxMindOptions(db_path="/data/GeoLite2-City.mmdb"))
        assert asyncio.run(db.get("8.8.8.8")) == MAXMIND_RECORD

    def test_get_missing(self, reader):
        _, mock_reader = reader
        mock_reader.get.return_value = None
        db = MaxMindDb(MaxMindOptions(db_path="/data/GeoLite2-City.mmdb"))
        assert asyncio.run(db.get("10.0.0.1")) is None

    def test_get_rejected_address(self, reader):
        _, mock_reader = reader
        mock_reader.get.side_effect = ValueError("'999.1.1.1' does not appear to be an IPv4 or IPv6 address")
        db = MaxMindDb(MaxMindOptions(db_path="/data/GeoLite2-City.mmdb"))
        assert asyncio.run(db.get("999.1.1.1")) is None

    def test_string_values(self, reader):
        db = MaxMindDb(MaxMindOptions(db_path="/data/GeoLite2-City.mmdb"))
        assert db.get_string_value(MAXMIND_RECORD, "country") == "US"
        assert db.get_string_value(MAXMIND_RECORD, "subdivision") == "CA"
        assert db.get_string_value(MAXMIND_RECORD, "city") is None
        assert db.get_string_value(None, "country") is None

    def test_country_database_has_no_subdivision(self, reader):
        db = MaxMindDb(MaxMindOptions(db_path="/data/GeoLite2-Country.mmdb"))
        record = {"country": {"iso_code": "GB"}}
        assert db.get_string_value(record, "country") == "GB"
        assert db.get_string_value(record, "subdivision") is None
        assert db.get_string_value({"subdivisions": []}, "subdivision") is None
        assert db.get_string_value({"registered_country": {"iso_code": "US"}}, "country") is None

    def test_close(self, reader):
        _, mock_reader = reader
        MaxMindDb(MaxMindOptions(db_path="/data/GeoLite2-City.mmdb")).close()
        mock_reader.close.assert_called_once()

    def test_missing_file_fails_fast(self, tmp_path):
        with pytest.raises(DatabaseLoadError, match="Failed to load MaxMind database"):
            MaxMindDb(MaxMindOptions(db_path=str(tmp_path / "missing.mmdb")))

    def test_invalid_file_fails_fast(self, tmp_path):
        path = tmp_path / "garbage.mmdb"
        path.write_bytes(b"not a maxmind database" * 10)
        with pytest.raises(DatabaseLoadError):
            MaxMindDb(MaxMindOptions(db_path=str(path)))


class TestSubdivisionCsv:

    def test_load(self, tmp_path):
        path = tmp_path / "IP2LOCATION-ISO3166-2.CSV"
        path.write_text(SUBDIVISION_CSV, encoding="utf-8")
        subdivisions = load_subdivision_csv(str(path))
        assert subdivisions == {
            ("US", "california"): "CA",
            ("US", "new york"): "NY",
            ("GB", "england"): "ENG",
            ("FR", "île-de-france"): "IDF",
        }

    def test_short_and_blank_rows_skipped(self, tmp_path):
        path = tmp_path / "sub.csv"
        path.write_text('"US","California"\n\n"","Nowhere","XX-NO"\n"DE","Berlin","DE-BE"\n', encoding="utf-8")
        assert load_subdivision_csv(str(path)) == {("DE", "berlin"): "BE"}


class TestIP2LocationDb:
    """Test IP2Location reader"""

    @pytest.fixture
    def reader(self):
        with patch("geoip_api.providers.ip2location.IP2Location.IP2Location") as ip2location:
            mock_reader = MagicMock()
            mock_reader.get_all.return_value = ip2location_record()
            ip2location.return_value = mock_reader
            yield ip2location, mock_reader

    @pytest.fixture
    def csv_path(self, tmp_path):
        path = tmp_path / "IP2LOCATION-ISO3166-2.CSV"
        path.write_text(SUBDIVISION_CSV, encoding="utf-8")
        return str(path)

    def test_opens_database(self, reader):
        ip2location, _ = reader
        IP2LocationDb(IP2LocationOptions(db_path="/data/IP2LOCATION-LITE-DB3.BIN"))
        ip2location.assert_called_once_with("/data/IP2LOCATION-LITE-DB3.BIN")

    def test_get_with_subdivision(self, reader, csv_path):
        db = IP2LocationDb(IP2LocationOptions(db_path="/data/DB3.BIN", subdivision_csv_path=csv_path))
        record = asyncio.run(db.get("8.8.8.8"))
        assert record["country_short"] == "US"
        assert record["subdivision"] == "CA"
        assert db.get_string_value(record, "country") == "US"
        assert db.get_string_value(record, "subdivision") == "CA"

    def test_placeholders_dropped(self, reader):
        db = IP2LocationDb(IP2LocationOptions(db_path="/data/DB3.BIN"))
        record = asyncio.run(db.get("8.8.8.8"))
        assert "isp" not in record
        assert "zipcode" not in record
        assert record["latitude"] == 37.40599

    def test_no_subdivision_without_csv(self, reader):
        db = IP2LocationDb(IP2LocationOptions(db_path="/data/DB3.BIN"))
        record = asyncio.run(db.get("8.8.8.8"))
        assert "subdivision" not in record
        assert db.get_string_value(record, "subdivision") is None

    def test_unknown_region_has_no_subdivision(self, reader, csv_path):
        _, mock_reader = reader
        mock_reader.get_all.return_value = ip2location_record(region="Atlantis")
        db = IP2LocationDb(IP2LocationOptions(db_path="/data/DB3.BIN", subdivision_csv_path=csv_path))
        assert "subdivision" not in asyncio.run(db.get("8.8.8.8"))

    def test_db1_region_unavailable(self, reader, csv_path):
        _, mock_reader = reader
        mock_reader.get_all.return_value = ip2location_record(region=UNAVAILABLE)
        db = IP2LocationDb(IP2LocationOptions(db_path="/data/DB1.BIN", subdivision_csv_path=csv_path))
        record = asyncio.run(db.get("8.8.8.8"))
        assert db.get_string_value(record, "country") == "US"
        assert db.get_string_value(record, "subdivision") is None

    @pytest.mark.parametrize("country", ["-", "INVALID IP ADDRESS", "IPV6 ADDRESS MISSING IN IPV4 BIN", None])
    def test_get_not_found(self, reader, country):
        _, mock_reader = reader
        mock_reader.get_all.return_value = ip2location_record(country_short=country)
        db = IP2LocationDb(IP2LocationOptions(db_path="/data/DB3.BIN"))
        assert asyncio.run(db.get("10.0.0.1")) is None

    def test_get_rejected_address(self, reader):
        _, mock_reader = reader
        mock_reader.get_all.side_effect = ValueError("The IP address provided is invalid.")
        db = IP2LocationDb(IP2LocationOptions(db_path="/data/DB3.BIN"))
        assert asyncio.run(db.get("999.1.1.1")) is None

    def test_string_values(self, reader):
        db = IP2LocationDb(IP2LocationOptions(db_path="/data/DB3.BIN"))
        assert db.get_string_value(None, "country") is None
        assert db.get_string_value({"country_short": "US"}, "city") is None

    def test_close(self, reader):
        _, mock_reader = reader
        IP2LocationDb(IP2LocationOptions(db_path="/data/DB3.BIN")).close()
        mock_reader.close.assert_called_once()

    def test_missing_csv_fails_fast(self, reader, tmp_path):
        options = IP2LocationOptions(db_path="/data/DB3.BIN", subdivision_csv_path=str(tmp_path / "missing.csv"))
        with pytest.raises(DatabaseLoadError, match="subdivision CSV"):
            IP2LocationDb(options)

    def test_missing_database_fails_fast(self, tmp_path):
        with pytest.raises(DatabaseLoadError, match="Failed to load IP2Location database"):
            IP2LocationDb(IP2LocationOptions(db_path=str(tmp_path / "missing.BIN")))

    def test_truncated_database_fails_fast(self, tmp_path):
        path = tmp_path / "truncated.BIN"
        path.write_bytes(b"\x01\x02\x03")
        with pytest.raises(DatabaseLoadError, match="Failed to load IP2Location database"):
            IP2LocationDb(IP2LocationOptions(db_path=str(path)))
