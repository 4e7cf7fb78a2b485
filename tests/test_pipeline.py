import io
import os
import tempfile
import xml.etree.ElementTree as ET
import zipfile
from unittest.mock import patch

import pytest
from PIL import Image

from conftest import descriptor_xml, solid_image
from sheetgen import archive, pipeline
from sheetgen.errors import InputError, PackagingError, PackingError
from sheetgen.models import SheetOptions, Upload


def _unzip(data):
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return {name: zf.read(name) for name in zf.namelist()}


def _subtextures(files, name="hero"):
    return ET.fromstring(files[f"{name}.xml"]).findall("SubTexture")


def _overlap(a, b):
    ax, ay, aw, ah = (int(a.get(k)) for k in ("x", "y", "width", "height"))
    bx, by, bw, bh = (int(b.get(k)) for k in ("x", "y", "width", "height"))
    return not (ax + aw <= bx or bx + bw <= ax or ay + ah <= by or by + bh <= ay)


def test_two_standalone_frames_scenario(make_upload):
    options = SheetOptions(name="hero", padding=0, clip_to_bbox=False)
    uploads = [
        make_upload("walk1.png", solid_image(16, 16, (255, 0, 0, 255))),
        make_upload("walk2.png", solid_image(16, 16, (0, 255, 0, 255))),
    ]

    filename, data = pipeline.generate_spritesheet(options, uploads, [], [])

    assert filename == "hero.zip"
    files = _unzip(data)
    assert sorted(files) == ["hero.png", "hero.xml"]
    subs = _subtextures(files)
    assert [s.get("name") for s in subs] == ["walk10000", "walk20000"]
    assert not _overlap(subs[0], subs[1])
    assert Image.open(io.BytesIO(files["hero.png"])).size == (32, 16)


def test_atlas_entries_collapse_to_one_prefix(make_upload):
    sheet = Image.new("RGBA", (12, 4), (0, 0, 0, 0))
    for i, color in enumerate([(255, 0, 0, 255), (0, 255, 0, 255), (0, 0, 255, 255)]):
        sheet.paste(solid_image(4, 4, color), (i * 4, 0))
    xml = descriptor_xml(
        "run.png",
        [{"name": f"run{i}", "x": i * 4, "y": 0, "width": 4, "height": 4} for i in range(3)],
    )
    options = SheetOptions(name="hero", use_prefix_on_xml=True, xml_trim=-1)

    _, data = pipeline.generate_spritesheet(options, [], [make_upload("run.png", sheet)], [Upload("run.xml", xml)])

    names = [s.get("name") for s in _subtextures(_unzip(data))]
    assert names == ["run0000", "run0001", "run0002"]


def test_identical_frames_share_one_placement(make_upload):
    white = solid_image(8, 8)
    options = SheetOptions(name="hero")

    _, data = pipeline.generate_spritesheet(
        options, [make_upload("a.png", white), make_upload("b.png", white)], [], []
    )

    files = _unzip(data)
    atlas = Image.open(io.BytesIO(files["hero.png"]))
    assert atlas.size == (8 + 2 * 2, 8 + 2 * 2)
    a, b = _subtextures(files)
    assert (a.get("name"), b.get("name")) == ("a0000", "b0000")
    for key in ("x", "y", "width", "height"):
        assert a.get(key) == b.get(key)


def test_no_frames_is_a_single_input_error():
    with pytest.raises(InputError) as excinfo:
        pipeline.generate_spritesheet(SheetOptions(name="hero"), [], [], [])
    assert len(excinfo.value.messages) == 1


def test_input_errors_abort_before_packing(make_upload):
    uploads = [make_upload("good.png", solid_image(4, 4)), Upload("bad.png", b"garbage")]
    with patch.object(pipeline, "pack_rectangles") as mock_pack, \
         patch.object(pipeline, "build_zip") as mock_zip:
        with pytest.raises(InputError) as excinfo:
            pipeline.generate_spritesheet(SheetOptions(name="hero"), uploads, [], [])
    assert any("bad.png" in m for m in excinfo.value.messages)
    mock_pack.assert_not_called()
    mock_zip.assert_not_called()


def test_out_of_range_alpha_threshold_is_rejected(make_upload):
    with pytest.raises(InputError):
        pipeline.generate_spritesheet(
            SheetOptions(name="hero", alpha_threshold=200),
            [make_upload("a.png", solid_image(2, 2))],
            [],
            [],
        )


def test_padding_above_atlas_bound_is_rejected(make_upload):
    with patch.object(pipeline, "normalize_frames") as mock_normalize:
        with pytest.raises(InputError):
            pipeline.generate_spritesheet(
                SheetOptions(name="hero", padding=1000000),
                [make_upload("a.png", solid_image(2, 2))],
                [],
                [],
            )
    mock_normalize.assert_not_called()


def test_global_prefix_applies_to_standalone_frames_only_by_default(make_upload):
    sheet = solid_image(4, 4, (0, 0, 255, 255))
    xml = descriptor_xml("s.png", [{"name": "jump3", "x": 0, "y": 0, "width": 4, "height": 4}])
    options = SheetOptions(name="hero", prefix_type="custom-prefix", custom_prefix="bf")

    _, data = pipeline.generate_spritesheet(
        options,
        [make_upload("idle.png", solid_image(4, 4))],
        [make_upload("s.png", sheet)],
        [Upload("s.xml", xml)],
    )

    names = [s.get("name") for s in _subtextures(_unzip(data))]
    assert names == ["bf idle0000", "jump0000"]


def test_character_name_prefix(make_upload):
    options = SheetOptions(name="hero", prefix_type="character-name")
    _, data = pipeline.generate_spritesheet(options, [make_upload("idle.png", solid_image(4, 4))], [], [])
    assert _subtextures(_unzip(data))[0].get("name") == "hero idle0000"


def test_sequence_export_unique_frames(make_upload):
    white = solid_image(8, 8)
    options = SheetOptions(name="hero", action="generate_sequence", unique_frames_only=True)

    _, data = pipeline.generate_spritesheet(
        options,
        [make_upload("a.png", white), make_upload("b.png", white), make_upload("c.png", solid_image(3, 3))],
        [],
        [],
    )

    names = sorted(_unzip(data))
    assert len(names) == 2
    assert all(n.startswith("image_frame-") and n.endswith(".png") for n in names)


def test_sequence_export_full_reconstruction(make_upload):
    sheet = Image.new("RGBA", (8, 4), (0, 0, 0, 0))
    sheet.paste(solid_image(4, 4, (255, 0, 0, 255)), (0, 0))
    sheet.paste(solid_image(2, 2, (0, 255, 0, 255)), (5, 1))
    xml = descriptor_xml(
        "s.png",
        [
            {"name": "idle0", "x": 0, "y": 0, "width": 4, "height": 4},
            {"name": "idle1", "x": 4, "y": 0, "width": 4, "height": 4},
        ],
    )
    options = SheetOptions(name="hero", action="generate_sequence", padding=0)

    _, data = pipeline.generate_spritesheet(options, [], [make_upload("s.png", sheet)], [Upload("s.xml", xml)])

    files = _unzip(data)
    assert sorted(files) == ["idle0.png", "idle1.png"]
    second = Image.open(io.BytesIO(files["idle1.png"])).convert("RGBA")
    assert second.size == (4, 4)
    assert second.getpixel((1, 1)) == (0, 255, 0, 255)
    assert second.getpixel((0, 0))[3] == 0


def test_packing_error_propagates(make_upload):
    with patch.object(pipeline, "pack_rectangles", side_effect=PackingError("Unable to pack")):
        with pytest.raises(PackingError):
            pipeline.generate_spritesheet(
                SheetOptions(name="hero"), [make_upload("a.png", solid_image(2, 2))], [], []
            )


def test_zip_staging_directory_is_removed_on_failure():
    created = []
    real_tmpdir = tempfile.TemporaryDirectory

    def _tracking(*args, **kwargs):
        tmp = real_tmpdir(*args, **kwargs)
        created.append(tmp.name)
        return tmp

    def _entries():
        yield "ok.txt", b"fine"
        raise OSError("disk full")

    with patch.object(archive.tempfile, "TemporaryDirectory", side_effect=_tracking):
        with pytest.raises(PackagingError):
            archive.build_zip(_entries())

    assert created and not os.path.exists(created[0])


def test_zip_staging_directory_is_removed_on_success():
    created = []
    real_tmpdir = tempfile.TemporaryDirectory

    def _tracking(*args, **kwargs):
        tmp = real_tmpdir(*args, **kwargs)
        created.append(tmp.name)
        return tmp

    with patch.object(archive.tempfile, "TemporaryDirectory", side_effect=_tracking):
        data = archive.build_zip([("a.txt", b"hello")])

    assert _unzip(data) == {"a.txt": b"hello"}
    assert not os.path.exists(created[0])
