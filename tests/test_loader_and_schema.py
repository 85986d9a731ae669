import json
from pathlib import Path

import pytest

from pass_bundle.descriptor import pass_to_dict
from pass_bundle.errors import PassBundleError
from pass_bundle.loader import load_pass_document, pass_from_document
from pass_bundle.models import FieldType, PassType
from pass_bundle.schema import list_schemas, validate_file, validate_instance


def _doc(**extra):
    doc = {
        "type": "boardingPass",
        "passTypeIdentifier": "pass.com.example.air",
        "serialNumber": "BP-42",
        "teamIdentifier": "TEAM123456",
        "organizationName": "Example Air",
        "description": "Boarding pass",
    }
    doc.update(extra)
    return doc


def test_list_schemas():
    assert list_schemas() == ["pass_document"]


def test_minimal_document_is_valid():
    ok, msgs = validate_instance(_doc())
    assert ok, [m.detail for m in msgs if not m.ok]


def test_missing_required_fields():
    ok, msgs = validate_instance({"type": "coupon"})
    assert not ok
    assert any("required" in m.detail.lower() for m in msgs if not m.ok)


def test_unknown_top_level_key_rejected():
    ok, msgs = validate_instance(_doc(colour="red"))
    assert not ok


def test_validate_file_errors(tmp_path: Path):
    ok, msgs = validate_file(tmp_path / "missing.json")
    assert not ok and msgs[0].code == "NOT_FOUND"

    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    ok, msgs = validate_file(bad)
    assert not ok and msgs[0].code == "JSON_PARSE_ERROR"


def test_document_to_pass(tmp_path: Path):
    (tmp_path / "img").mkdir()
    (tmp_path / "img" / "icon.png").write_bytes(b"icon")
    (tmp_path / "img" / "fr-logo.png").write_bytes(b"fr-logo")
    doc = _doc(
        transitType="PKTransitTypeTrain",
        barcodes=[{"message": "BP-42", "format": "PKBarcodeFormatPDF417", "messageEncoding": "utf-8"}],
        beacons=[{"proximityUUID": "E2C56DB5-DFFB-48D2-B060-D0F5A71096E0"}],
        fields={
            "primary": [{"key": "from", "value": "PAR"}, {"key": "to", "value": "LYS"}],
            "back": [{"key": "terms", "value": "See website", "changeMessage": "Updated: %@"}],
        },
        assets={"icon.png": "img/icon.png"},
        localizations=[{"culture": "fr", "values": {"from": "De"}, "assets": {"logo.png": "img/fr-logo.png"}}],
        extra={"nfc": {"message": "abc"}},
    )
    path = tmp_path / "pass.json"
    path.write_text(json.dumps(doc), encoding="utf-8")

    p = load_pass_document(path)
    assert p.type is PassType.BOARDING_PASS
    assert p.icon.data == b"icon"
    assert [f.key for f in p.fields[FieldType.PRIMARY]] == ["from", "to"]
    assert p.fields[FieldType.BACK][0].change_message == "Updated: %@"
    assert p.barcodes[0].message_encoding == "utf-8"
    assert p.beacons[0].proximity_uuid == "E2C56DB5-DFFB-48D2-B060-D0F5A71096E0"
    assert p.localizations[0].culture == "fr"
    assert p.localizations[0].logo.data == b"fr-logo"

    d = pass_to_dict(p)
    assert d["boardingPass"]["transitType"] == "PKTransitTypeTrain"
    assert d["nfc"] == {"message": "abc"}
    assert d["barcodes"][0]["format"] == "PKBarcodeFormatPDF417"


def test_invalid_document_raises_with_errors():
    with pytest.raises(PassBundleError) as ei:
        pass_from_document(_doc(type="ticket"))
    assert ei.value.code == "PASS_E_INVALID_DOCUMENT"
    assert ei.value.details["errors"]


def test_unknown_asset_name_rejected():
    ok, _ = validate_instance(_doc(assets={"banner.png": "banner.png"}))
    assert not ok


def test_malformed_json_document(tmp_path: Path):
    path = tmp_path / "broken.json"
    path.write_text('{"type": ', encoding="utf-8")
    with pytest.raises(PassBundleError) as ei:
        load_pass_document(path)
    assert ei.value.code == "PASS_E_INVALID_DOCUMENT"
