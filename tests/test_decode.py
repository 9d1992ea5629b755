from __future__ import annotations

import gzip

import pytest

from conftest import DATASET_BIN, DATASET_JSON, make_city, make_country, make_state, to_json_bytes
from geodb.binary import encode_binary
from geodb.decode import decode_alias_table, decode_dataset, detect_format
from geodb.errors import DecodeError, UnsupportedVersion


def test_json_list_root(small_dataset_bytes: bytes) -> None:
    raw = decode_dataset(small_dataset_bytes)
    assert raw.source_format == "json"
    assert [country.iso2 for country in raw.countries] == ["AA", "BB", "CC"]
    north = raw.countries[0].states[0]
    assert north.code == "N"
    assert [city.name for city in north.cities] == ["Springfield", "Capital City"]
    assert north.cities[1].aliases == ("Cap",)


def test_json_mapping_root_with_aliases() -> None:
    root = {
        "version": 1,
        "countries": [make_country("AA", "AAA", states=[make_state("North", "N", [make_city("Town")])])],
        "aliases": {"AA": [{"state": "North", "city": "Town", "aliases": ["Burg"]}]},
    }
    raw = decode_dataset(to_json_bytes(root))
    assert len(raw.countries) == 1
    assert len(raw.aliases) == 1
    assert raw.aliases[0].iso2 == "AA"
    assert raw.aliases[0].aliases == ("Burg",)


def test_json_version_mismatch() -> None:
    with pytest.raises(UnsupportedVersion):
        decode_dataset(to_json_bytes({"version": 2, "countries": []}))


def test_malformed_json_reports_offset() -> None:
    with pytest.raises(DecodeError) as excinfo:
        decode_dataset(b'[{"name": "A",')
    assert excinfo.value.offset is not None


def test_non_list_countries_is_rejected() -> None:
    with pytest.raises(DecodeError, match="Expected a list of countries"):
        decode_dataset(to_json_bytes({"countries": {"AA": {}}}))


def test_missing_required_field_names_record_path(small_dataset) -> None:
    del small_dataset[1]["states"][0]["cities"][0]["name"]
    with pytest.raises(DecodeError) as excinfo:
        decode_dataset(to_json_bytes(small_dataset))
    assert excinfo.value.record == "countries[1].states[0].cities[0].name"


def test_gzip_payloads_decode(small_dataset) -> None:
    json_gz = gzip.compress(to_json_bytes(small_dataset))
    bin_gz = gzip.compress(encode_binary(small_dataset))
    from_json = decode_dataset(json_gz)
    from_bin = decode_dataset(bin_gz)
    assert from_json.source_format == "json"
    assert from_bin.source_format == "binary"
    assert from_json.countries == from_bin.countries


def test_corrupt_gzip() -> None:
    with pytest.raises(DecodeError, match="gzip"):
        decode_dataset(b"\x1f\x8b\x08\x00garbage")


def test_explicit_format_overrides_detection(small_dataset_bytes: bytes) -> None:
    with pytest.raises(DecodeError, match="magic"):
        decode_dataset(small_dataset_bytes, "binary")
    with pytest.raises(ValueError, match="Unknown dataset format"):
        decode_dataset(small_dataset_bytes, "xml")


def test_detect_format() -> None:
    assert detect_format(encode_binary([])) == "binary"
    assert detect_format(b"[]") == "json"


def test_coordinates() -> None:
    cities = [
        make_city("Numeric", latitude=12.5, longitude=-45),
        make_city("Garbled", latitude="north-ish", longitude=""),
        make_city("Missing", latitude=None, longitude=None),
    ]
    root = [make_country("AA", "AAA", states=[make_state("S", "S", cities)])]
    parsed = decode_dataset(to_json_bytes(root)).countries[0].states[0].cities
    assert (parsed[0].latitude, parsed[0].longitude) == (12.5, -45.0)
    assert parsed[1].latitude is None and parsed[1].longitude is None
    assert parsed[2].latitude is None and parsed[2].longitude is None


def test_out_of_range_coordinate_is_rejected() -> None:
    root = [make_country("AA", "AAA", states=[make_state("S", "S", [make_city("Far", latitude="91")])])]
    with pytest.raises(DecodeError) as excinfo:
        decode_dataset(to_json_bytes(root))
    assert excinfo.value.record == "countries[0].states[0].cities[0].latitude"


def test_optional_fields_and_translations() -> None:
    root = [
        make_country(
            "AA",
            "AAA",
            population="1200",
            capital="",
            translations={"fr": "Alpha", "de": "Alpha-Land", "xx": None},
            timezones=[{"zoneName": "Etc/UTC", "gmtOffset": 0}],
        )
    ]
    country = decode_dataset(to_json_bytes(root)).countries[0]
    assert country.population == 1200
    assert country.capital is None
    assert country.translations == (("de", "Alpha-Land"), ("fr", "Alpha"))
    assert country.timezones[0].zone_name == "Etc/UTC"
    assert country.timezones[0].gmt_offset == 0


def test_bundled_binary_matches_json_source() -> None:
    from_json = decode_dataset(DATASET_JSON.read_bytes())
    from_bin = decode_dataset(DATASET_BIN.read_bytes())
    assert from_bin.source_format == "binary"
    assert from_json.countries == from_bin.countries


def test_alias_table_yaml_and_json() -> None:
    yaml_text = "DE:\n  - state: Bavaria\n    city: Munich\n    aliases: [Minga]\n"
    json_text = '{"DE": [{"state": "Bavaria", "city": "Munich", "aliases": ["Minga"]}]}'
    assert decode_alias_table(yaml_text) == decode_alias_table(json_text)
    assert decode_alias_table("") == ()


def test_alias_table_errors() -> None:
    with pytest.raises(DecodeError, match="Malformed alias table"):
        decode_alias_table("DE: [unclosed")
    with pytest.raises(DecodeError, match="ISO2"):
        decode_alias_table("- just a list\n")
    with pytest.raises(DecodeError) as excinfo:
        decode_alias_table("DE:\n  - city: Munich\n")
    assert excinfo.value.record == "aliases.DE[0].state"


def test_deeply_nested_json_is_a_decode_error() -> None:
    with pytest.raises(DecodeError, match="Nesting too deep"):
        decode_dataset(b"[" * 100000 + b"]" * 100000)


@pytest.mark.parametrize("version", [True, "1", 1.0, 0])
def test_json_version_must_be_the_integer_one(version) -> None:
    with pytest.raises(UnsupportedVersion):
        decode_dataset(to_json_bytes({"version": version, "countries": []}))


def test_json_version_one_is_accepted() -> None:
    assert decode_dataset(to_json_bytes({"version": 1, "countries": []})).countries == ()
