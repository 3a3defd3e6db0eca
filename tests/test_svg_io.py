from pathlib import Path as FsPath

import numpy as np
import pytest

from src.oxidepack.export_svg import export_sampled_paths_svg
from src.oxidepack.model import ThicknessField
from src.oxidepack.pipeline import compute_sampled_path
from src.oxidepack.svg_io import load_path_nodes, load_svg_canvas

SVG_HEADER = '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 100 50" width="100mm" height="50mm">'


def _write_svg(tmp_path: FsPath, body: str) -> str:
    out = tmp_path / "shape.svg"
    out.write_text(f"{SVG_HEADER}{body}</svg>", encoding="utf-8")
    return str(out)


def test_load_closed_polygon(tmp_path: FsPath) -> None:
    svg = _write_svg(tmp_path, '<path id="square" d="M 10 10 L 40 10 L 40 40 L 10 40 Z"/>')
    path = load_path_nodes(svg)
    assert path.closed
    assert path.name == "square"
    assert [n.point for n in path.nodes] == [(10.0, 10.0), (40.0, 10.0), (40.0, 40.0), (10.0, 40.0)]
    assert all(n.handle_in is None and n.handle_out is None for n in path.nodes)


def test_load_open_cubic(tmp_path: FsPath) -> None:
    svg = _write_svg(tmp_path, '<path d="M 0 0 C 10 0 20 10 20 20"/>')
    path = load_path_nodes(svg, name="curve")
    assert not path.closed
    assert path.name == "curve"
    assert len(path.nodes) == 2
    assert path.nodes[0].handle_out == (10.0, 0.0)
    assert path.nodes[1].handle_in == (20.0, 10.0)


def test_quadratic_becomes_cubic_pieces(tmp_path: FsPath) -> None:
    svg = _write_svg(tmp_path, '<path d="M 0 0 Q 10 20 20 0"/>')
    path = load_path_nodes(svg)
    assert len(path.nodes) == 5
    np.testing.assert_allclose(path.nodes[2].point, (10.0, 10.0))


def test_missing_path_raises(tmp_path: FsPath) -> None:
    svg = _write_svg(tmp_path, '<g id="empty"/>')
    with pytest.raises(ValueError):
        load_path_nodes(svg)


def test_canvas(tmp_path: FsPath) -> None:
    svg = _write_svg(tmp_path, '<path d="M 0 0 L 1 1"/>')
    viewbox, canvas = load_svg_canvas(svg)
    assert viewbox == (0.0, 0.0, 100.0, 50.0)
    assert canvas == ("100mm", "50mm")


def test_export_writes_layers(tmp_path: FsPath) -> None:
    svg = _write_svg(tmp_path, '<path d="M 10 10 L 40 10 L 40 40 L 10 40 Z"/>')
    path = load_path_nodes(svg)
    sampled = compute_sampled_path(path, ThicknessField(uniform=3.0))
    out = tmp_path / "out.svg"
    export_sampled_paths_svg(str(out), [path], [sampled], show_samples=True)
    text = out.read_text(encoding="utf-8")
    assert "<polygon" in text
    assert "<path" in text
    assert "<circle" in text
    with pytest.raises(ValueError):
        export_sampled_paths_svg(str(out), [path], [])
