"""
Headless raster preview of point streams.

Points are rotated (azimuth around Y, then elevation around X), projected
orthographically, splatted bilinearly onto a float accumulation buffer,
bloomed with a gaussian pass and ACES tone-mapped. Meant for eyeballing a
configuration without a 3D scene, not for final visuals.
"""

import math
from pathlib import Path
from typing import Sequence, Tuple, Union

import numba
import numpy as np
from PIL import Image
from scipy.ndimage import gaussian_filter

# One tint per layer, cycled
_TINTS = (
    (1.00, 0.38, 0.49),
    (0.60, 0.51, 0.74),
    (0.30, 0.75, 1.00),
    (1.00, 0.80, 0.20),
    (0.20, 1.00, 0.60),
)


def rotation_matrix(azimuth: float, elevation: float) -> np.ndarray:
    """View rotation: turn by ``azimuth`` about +Y, then tilt by ``elevation`` about +X."""
    ca, sa = math.cos(azimuth), math.sin(azimuth)
    ce, se = math.cos(elevation), math.sin(elevation)
    return np.array(
        [
            [ca, 0.0, sa],
            [se * sa, ce, -se * ca],
            [-ce * sa, se, ce * ca],
        ],
        dtype=np.float64,
    )


@numba.njit(cache=True)
def _splat_kernel(xs, ys, rgb, accum):
    h = accum.shape[0]
    w = accum.shape[1]
    for n in range(xs.shape[0]):
        if not (-1.0 < xs[n] < w and -1.0 < ys[n] < h):
            continue
        fx0 = math.floor(xs[n])
        fy0 = math.floor(ys[n])
        tx = xs[n] - fx0
        ty = ys[n] - fy0
        col = int(fx0)
        row = int(fy0)
        for corner in range(4):
            c = col + (corner & 1)
            r = row + (corner >> 1)
            if c < 0 or c >= w or r < 0 or r >= h:
                continue
            wx = tx if corner & 1 else 1.0 - tx
            wy = ty if corner >> 1 else 1.0 - ty
            weight = wx * wy
            for k in range(3):
                accum[r, c, k] += rgb[n, k] * weight


def splat_bilinear(
    x_arr: np.ndarray,
    y_arr: np.ndarray,
    rgb: np.ndarray,
    accum: np.ndarray,
) -> None:
    """Scatter N colored points onto an (H, W, 3) float32 buffer, sharing each
    point between its four neighbouring pixels."""
    _splat_kernel(
        np.ascontiguousarray(x_arr, dtype=np.float64),
        np.ascontiguousarray(y_arr, dtype=np.float64),
        np.ascontiguousarray(rgb, dtype=np.float32),
        accum,
    )


def fit_bounds(points: np.ndarray, margin: float = 1.1) -> Tuple[np.ndarray, float]:
    """Return (center, half_extent) framing the finite points in 2D."""
    finite = points[np.isfinite(points).all(axis=1)]
    if len(finite) == 0:
        return np.zeros(2), 1.0
    center = (finite.min(axis=0) + finite.max(axis=0)) / 2.0
    half = float(np.abs(finite - center).max()) * margin
    return center, max(half, 1e-6)


def render_points(
    layers: Sequence[np.ndarray],
    width: int = 640,
    height: int = 480,
    azimuth: float = 0.0,
    elevation: float = 0.0,
    glow_sigma: float = 1.5,
    exposure: float = 1.0,
) -> np.ndarray:
    """
    Rasterise point layers into an RGB preview.

    Args:
        layers: Sequence of (N, 3) point arrays; each gets its own tint.
        width, height: Output size in pixels.
        azimuth, elevation: View rotation in radians.
        glow_sigma: Gaussian bloom sigma in pixels (0 disables bloom).
        exposure: Multiplier before tone mapping.

    Returns:
        (H, W, 3) uint8 RGB array.
    """
    accum = np.zeros((height, width, 3), dtype=np.float32)
    layers = [np.asarray(layer, dtype=np.float64).reshape(-1, 3) for layer in layers]
    layers = [layer for layer in layers if len(layer)]
    if not layers:
        return accum.astype(np.uint8)

    R = rotation_matrix(azimuth, elevation)
    projected = [layer @ R.T for layer in layers]
    center, half = fit_bounds(np.concatenate(projected)[:, :2])
    scale = 0.5 * min(width, height) / half

    total = sum(len(p) for p in projected)
    # Keep overall brightness roughly independent of point count
    weight = np.float32(min(1.0, 0.04 * width * height / max(total, 1)))

    for k, pts in enumerate(projected):
        pts = pts[np.isfinite(pts).all(axis=1)]
        sx = (pts[:, 0] - center[0]) * scale + width / 2.0
        sy = height / 2.0 - (pts[:, 1] - center[1]) * scale
        rgb = np.tile(np.asarray(_TINTS[k % len(_TINTS)], dtype=np.float32), (len(pts), 1))
        splat_bilinear(sx, sy, rgb * weight, accum)

    if glow_sigma > 0:
        bloom = gaussian_filter(accum, sigma=[glow_sigma, glow_sigma, 0])
        accum = accum + 0.7 * bloom

    # Hill (2015) ACES approximation
    x = accum * exposure
    _a, _b, _c, _d, _e = 2.51, 0.03, 2.43, 0.59, 0.14
    mapped = np.clip((x * (_a * x + _b)) / (x * (_c * x + _d) + _e), 0.0, 1.0)
    return (mapped * 255.0).astype(np.uint8)


def save_png(frame: np.ndarray, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(frame).save(path)
    return path


def load_png(path: Union[str, Path]) -> np.ndarray:
    with Image.open(path) as img:
        return np.asarray(img.convert("RGB"))
