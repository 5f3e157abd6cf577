"""
Tile Mosaic — Studio

Run with:
    streamlit run streamlit_app.py
"""

from __future__ import annotations

import io
import time
from pathlib import Path

import numpy as np
import streamlit as st
from PIL import Image

from tile_mosaic.compositor import composite, compute_canvas_size, compute_grid_size
from tile_mosaic.config import MosaicConfig
from tile_mosaic.errors import MosaicError
from tile_mosaic.image_io import load_image
from tile_mosaic.palette import Palette, build_palette

# -- Page config -------------------------------------------------------
st.set_page_config(
    page_title="Tile Mosaic",
    page_icon=None,
    layout="wide",
    initial_sidebar_state="collapsed",
)

_DEFAULTS = MosaicConfig()

# -- CSS ---------------------------------------------------------------
st.markdown("""
<style>
    .stApp {
        background-color: #faf9f6;
        color: #2a2a2a;
        font-family: 'Inter', 'Helvetica Neue', sans-serif;
    }
    .block-container {
        max-width: 1000px;
        padding-top: 3.5rem;
        padding-bottom: 4rem;
    }
    .gallery-title {
        font-family: 'Cormorant Garamond', 'Georgia', serif;
        font-size: 2.8rem;
        font-weight: 300;
        text-align: center;
        border-bottom: 1px solid #1a1a1a;
        padding-bottom: 0.6rem;
        margin-bottom: 0.5rem;
    }
    .gallery-subtitle {
        font-size: 0.75rem;
        font-weight: 300;
        line-height: 1.8;
        margin-bottom: 3rem;
    }
    .label-detail {
        text-align: center;
        font-size: 0.7rem;
        letter-spacing: 0.06em;
        text-transform: uppercase;
        color: #a0a09a;
    }
    #MainMenu {visibility: hidden;}
    footer {visibility: hidden;}
    header {visibility: hidden;}
</style>
""", unsafe_allow_html=True)


# -- Helpers -----------------------------------------------------------

@st.cache_resource(show_spinner=False)
def _palette_for(folder: str) -> Palette:
    root = Path(folder)
    tiles = sorted(
        f for f in root.iterdir()
        if f.is_file() and f.suffix.lower() in _DEFAULTS.SUPPORTED_EXTENSIONS
    )
    return build_palette(tiles)


# -- Title -------------------------------------------------------------
st.markdown('<div class="gallery-title">Tile Mosaic</div>', unsafe_allow_html=True)
st.markdown(
    '<div class="gallery-subtitle">'
    "Upload an image and point the studio at a folder of small tile images. "
    "Every tile is reduced to its average colour, the source is shrunk to one "
    "pixel per tile, and each pixel is replaced by the closest-matching tile. "
    "Enable dithering to trade flat regions for a finer texture of tiles."
    "</div>",
    unsafe_allow_html=True,
)

# -- Controls ----------------------------------------------------------
tiles_dir = st.text_input("Tile folder", str(_DEFAULTS.palette_dir))

ctrl1, ctrl2, ctrl3 = st.columns(3)
with ctrl1:
    tile_size = st.slider("Tile size (px)", 4, 64, _DEFAULTS.tile_width)
with ctrl2:
    scale = st.slider("Scale", 0.25, 8.0, _DEFAULTS.scale, step=0.25)
with ctrl3:
    dither = st.checkbox("Dithering", value=_DEFAULTS.dither)

uploaded = st.file_uploader("Select artwork", type=["jpg", "jpeg", "png", "webp", "bmp"])

if uploaded is not None:
    if not Path(tiles_dir).is_dir():
        st.error(f"Tile folder not found: {tiles_dir}")
        st.stop()

    try:
        original = load_image(uploaded)
        canvas_w, canvas_h = compute_canvas_size(original.width, original.height, scale)
        grid_w, grid_h = compute_grid_size(canvas_w, canvas_h, tile_size, tile_size)
        with st.spinner("Averaging tiles …"):
            palette = _palette_for(tiles_dir)

        progress = st.progress(0.0)
        t0 = time.perf_counter()
        mosaic = composite(
            original,
            scale,
            tile_size,
            tile_size,
            palette,
            dither=dither,
            progress=lambda done, total: progress.progress(done / total),
        )
        elapsed = time.perf_counter() - t0
        progress.empty()
    except MosaicError as exc:
        st.error(str(exc))
        st.stop()

    result = Image.fromarray(mosaic.astype(np.uint8))
    col1, col2 = st.columns(2)
    with col1:
        st.image(original, use_container_width=True)
        st.markdown('<div class="label-detail">Source</div>', unsafe_allow_html=True)
    with col2:
        st.image(result, use_container_width=True)
        st.markdown(
            f'<div class="label-detail">{grid_w} &times; {grid_h} tiles</div>',
            unsafe_allow_html=True,
        )

    buf = io.BytesIO()
    result.save(buf, format="PNG")
    st.download_button(
        "Download PNG",
        data=buf.getvalue(),
        file_name="tile_mosaic.png",
        mime="image/png",
        use_container_width=True,
    )

    m1, m2, m3 = st.columns(3)
    m1.metric("Resolution", f"{canvas_w} × {canvas_h}")
    m2.metric("Palette", f"{len(palette):,} tiles")
    m3.metric("Time", f"{elapsed:.1f} s")

else:
    st.markdown(
        '<p style="font-family: Cormorant Garamond, Georgia, serif; '
        "color: #bbb; font-size: 1rem; font-weight: 300; "
        'font-style: italic; margin-top: 2rem;">'
        "Select an artwork to begin.</p>",
        unsafe_allow_html=True,
    )
