from . import (
    arcs,
    bezier,
    cache,
    envelope,
    export_svg,
    geometry,
    metrics,
    model,
    normals,
    pipeline,
    presets,
    robustness,
    sampler,
    svg_io,
    thickness,
)

__all__ = [
    "model",
    "bezier",
    "sampler",
    "normals",
    "thickness",
    "arcs",
    "envelope",
    "geometry",
    "robustness",
    "pipeline",
    "cache",
    "metrics",
    "presets",
    "svg_io",
    "export_svg",
]
