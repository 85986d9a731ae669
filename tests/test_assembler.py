import io
import zipfile

import pytest

from pass_bundle.archive import ArchiveBuilder
from pass_bundle.assembler import assemble, format_pass_strings
from pass_bundle.errors import PassBundleError
from pass_bundle.models import Asset, Localization
from pass_bundle.writer import bundle_to_bytes


def _names(blob: bytes):
    with zipfile.ZipFile(io.BytesIO(blob)) as zf:
        return zf.namelist()


def test_minimal_bundle_has_exactly_three_members(make_pass, identity, anchor_cert, sha256_config):
    blob = bundle_to_bytes(make_pass(), identity, anchor_cert, config=sha256_config)
    assert _names(blob) == ["pass.json", "manifest.json", "signature"]


def test_present_assets_written_byte_identical(make_pass, identity, anchor_cert, sha256_config):
    icon = Asset(b"\x89PNG icon bytes")
    logo_2x = Asset(b"\x89PNG logo@2x bytes")
    p = make_pass(icon=icon, logo_2x=logo_2x)

    blob = bundle_to_bytes(p, identity, anchor_cert, config=sha256_config)
    with zipfile.ZipFile(io.BytesIO(blob)) as zf:
        names = zf.namelist()
        assert zf.read("icon.png") == icon.data
        assert zf.read("logo@2x.png") == logo_2x.data

    assert names == ["pass.json", "icon.png", "logo@2x.png", "manifest.json", "signature"]
    for absent in ("logo.png", "icon@2x.png", "strip.png", "thumbnail@3x.png"):
        assert absent not in names


def test_localization_strings_and_assets(make_pass, identity, anchor_cert, sha256_config):
    fr = Localization(culture="fr", values={"greeting": "Bonjour"}, strip=Asset(b"fr-strip"))
    de = Localization(culture="de", logo=Asset(b"de-logo"))
    p = make_pass().add_localization(fr).add_localization(de)

    blob = bundle_to_bytes(p, identity, anchor_cert, config=sha256_config)
    with zipfile.ZipFile(io.BytesIO(blob)) as zf:
        assert zf.read("fr.lproj/pass.strings") == b'"greeting" = "Bonjour";'
        assert zf.read("fr.lproj/strip.png") == b"fr-strip"
        assert zf.read("de.lproj/logo.png") == b"de-logo"
        # No strings for a localization without values.
        assert "de.lproj/pass.strings" not in zf.namelist()


def test_pass_strings_format_keeps_order():
    text = format_pass_strings({"b": "two", "a": "one"})
    assert text == '"b" = "two";\n"a" = "one";'


def test_assemble_order(make_pass):
    p = make_pass(thumbnail=Asset(b"t"), icon=Asset(b"i"))
    p.add_localization(Localization(culture="en", values={"k": "v"}, icon=Asset(b"en-i")))
    buf = io.BytesIO()
    with ArchiveBuilder(buf) as archive:
        assemble(archive, p)
        names = archive.names()
    assert names == ["pass.json", "icon.png", "thumbnail.png", "en.lproj/pass.strings", "en.lproj/icon.png"]


def test_duplicate_member_rejected():
    with ArchiveBuilder(io.BytesIO()) as archive:
        archive.add("pass.json", b"{}")
        with pytest.raises(PassBundleError) as ei:
            archive.add("pass.json", b"{}")
    assert ei.value.code == "PASS_E_DUPLICATE_MEMBER"


def test_duplicate_localization_culture_rejected(make_pass, identity, anchor_cert, sha256_config):
    p = make_pass()
    p.add_localization(Localization(culture="fr", values={"a": "b"}))
    p.add_localization(Localization(culture="fr", values={"c": "d"}))
    with pytest.raises(PassBundleError) as ei:
        bundle_to_bytes(p, identity, anchor_cert, config=sha256_config)
    assert ei.value.code == "PASS_E_DUPLICATE_MEMBER"


def test_write_after_close_rejected():
    archive = ArchiveBuilder(io.BytesIO())
    archive.close()
    assert archive.closed
    with pytest.raises(PassBundleError) as ei:
        archive.add("late.png", b"x")
    assert ei.value.code == "PASS_E_ARCHIVE_STATE"


def test_close_leaves_caller_stream_open():
    buf = io.BytesIO()
    with ArchiveBuilder(buf) as archive:
        archive.add("pass.json", b"{}")
    assert not buf.closed
    assert _names(buf.getvalue()) == ["pass.json"]


def test_stored_compression(make_pass, identity, anchor_cert):
    from pass_bundle.config import BundleConfig

    cfg = BundleConfig(digest_algorithm="sha256", compression="stored")
    blob = bundle_to_bytes(make_pass(), identity, anchor_cert, config=cfg)
    with zipfile.ZipFile(io.BytesIO(blob)) as zf:
        assert all(i.compress_type == zipfile.ZIP_STORED for i in zf.infolist())


def test_members_are_idempotent_across_runs(make_pass, identity, anchor_cert, sha256_config):
    p = make_pass(icon=Asset(b"icon"), strip_3x=Asset(b"strip"))
    first = bundle_to_bytes(p, identity, anchor_cert, config=sha256_config)
    second = bundle_to_bytes(p, identity, anchor_cert, config=sha256_config)
    with zipfile.ZipFile(io.BytesIO(first)) as a, zipfile.ZipFile(io.BytesIO(second)) as b:
        for name in ("pass.json", "icon.png", "strip@3x.png", "manifest.json"):
            assert a.read(name) == b.read(name)
            assert a.getinfo(name).date_time == b.getinfo(name).date_time


@pytest.mark.parametrize("culture", ["../x", "fr/..", "", "en US", "fr\n"])
def test_invalid_culture_rejected(make_pass, identity, anchor_cert, sha256_config, culture):
    p = make_pass().add_localization(Localization(culture=culture, values={"a": "b"}))
    with pytest.raises(PassBundleError) as ei:
        bundle_to_bytes(p, identity, anchor_cert, config=sha256_config)
    assert ei.value.code == "PASS_E_INVALID_DOCUMENT"


def test_culture_with_region_accepted(make_pass, identity, anchor_cert, sha256_config):
    p = make_pass().add_localization(Localization(culture="zh-Hans_CN", values={"a": "b"}))
    blob = bundle_to_bytes(p, identity, anchor_cert, config=sha256_config)
    assert "zh-Hans_CN.lproj/pass.strings" in _names(blob)
