"""색상 결정 유틸.

우선순위 (먼저 맞는 것이 이긴다):
1. per_value_color[label]  - 라벨에 고정된 색상
2. custom_color            - 사용자가 입력한 색상
3. theme_color_ref         - 테마 슬롯
4. palette                 - index 순환 (monochrome 은 alpha 만 바꾼다)
5. 기본 accent 색상

투명도는 호출 측 alpha 를 그대로 쓰고, monochrome 의 alpha 변조는 곱해서 합친다.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from sheetviz.models.table import ColorConfig, Palette

DEFAULT_ACCENT = "#00e5ff"

_NEON_PALETTE: List[str] = [
    "#00e5ff",
    "#ff2bd6",
    "#39ff14",
    "#ffe600",
    "#8a5cff",
]
# Balanced categorical palette with high contrast on light backgrounds.
_COLORFUL_PALETTE: List[str] = [
    "#1d4ed8",
    "#0f766e",
    "#c2410c",
    "#be123c",
    "#6d28d9",
    "#0891b2",
]
_PRIMARY = "#6366f1"

THEME_SLOTS: Dict[str, str] = {
    **{f"chart-neon-{i + 1}": color for i, color in enumerate(_NEON_PALETTE)},
    **{f"chart-color-{i + 1}": color for i, color in enumerate(_COLORFUL_PALETTE)},
    "primary": _PRIMARY,
    "accent": DEFAULT_ACCENT,
    "foreground": "#0f172a",
}

_MONOCHROME_STEPS = 6
_MONOCHROME_BASE_SCALE = 0.6
_MONOCHROME_STEP_SCALE = 0.07
_MIN_ALPHA = 0.05


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return min(high, max(low, float(value)))


def _hex_to_rgb(color: str) -> Optional[Tuple[int, int, int]]:
    text = str(color or "").strip().lstrip("#")
    if len(text) == 3:
        text = "".join(ch * 2 for ch in text)
    if len(text) != 6:
        return None
    try:
        return (
            int(text[0:2], 16),
            int(text[2:4], 16),
            int(text[4:6], 16),
        )
    except ValueError:
        return None


def rgba(color: str, alpha: float) -> str:
    """Render a hex color with the given alpha; unparseable colors use the accent."""
    rgb = _hex_to_rgb(color) or _hex_to_rgb(DEFAULT_ACCENT)
    r, g, b = rgb  # type: ignore[misc]
    a = round(_clamp(alpha), 4)
    return f"rgba({r},{g},{b},{a})"


def theme_color(slot: str) -> str:
    """Look up a named theme slot (``--chart-neon-3`` and ``chart-neon-3`` both work)."""
    key = str(slot or "").strip().lstrip("-")
    return THEME_SLOTS.get(key, DEFAULT_ACCENT)


def palette_color(palette: Palette, index: int, alpha: float) -> str:
    if palette == "colorful":
        return rgba(_COLORFUL_PALETTE[index % len(_COLORFUL_PALETTE)], alpha)
    if palette == "monochrome":
        # 색상은 하나, 깊이감은 alpha 로만 준다
        scale = _MONOCHROME_BASE_SCALE + (index % _MONOCHROME_STEPS) * _MONOCHROME_STEP_SCALE
        return rgba(_PRIMARY, _clamp(alpha * scale, _MIN_ALPHA, 1.0))
    if palette == "neon":
        return rgba(_NEON_PALETTE[index % len(_NEON_PALETTE)], alpha)
    return rgba(DEFAULT_ACCENT, alpha)


# 입력: config, index, label, alpha
# 출력: rgba 색상 문자열
def resolve(config: ColorConfig, index: int, label: str, alpha: float) -> str:
    """Resolve the color for one point/slice/bar."""
    pinned = config.per_value_color.get(str(label))
    if pinned:
        return rgba(pinned, alpha)
    if config.custom_color:
        return rgba(config.custom_color, alpha)
    if config.theme_color_ref:
        return rgba(theme_color(config.theme_color_ref), alpha)
    return palette_color(config.palette, index, alpha)


def resolve_base(config: ColorConfig, alpha: float) -> str:
    """Series-wide color (line strokes, heatmap base); per-value pins do not apply."""
    if config.custom_color:
        return rgba(config.custom_color, alpha)
    if config.theme_color_ref:
        return rgba(theme_color(config.theme_color_ref), alpha)
    return palette_color(config.palette, 0, alpha)
