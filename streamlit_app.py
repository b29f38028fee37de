"""
Shape Mosaic: browser shell

Run with:
    streamlit run streamlit_app.py
"""

from __future__ import annotations

import io

import streamlit as st
from PIL import Image

from shape_mosaic.config import MosaicConfig, StyleConfig
from shape_mosaic.engine import Mode, MosaicEngine
from shape_mosaic.image_io import fit_to_height
from shape_mosaic.render import Shape
from shape_mosaic.sampling import SourceFrame

# -- Page config -------------------------------------------------------
st.set_page_config(
    page_title="Shape Mosaic",
    page_icon=None,
    layout="wide",
    initial_sidebar_state="collapsed",
)

_DEFAULTS = MosaicConfig()
_STYLE = StyleConfig()

# -- CSS ---------------------------------------------------------------
st.markdown("""
<style>
    .stApp {
        background-color: #f7f7f5;
        color: #222;
        font-family: 'Helvetica Neue', sans-serif;
    }
    .block-container {
        max-width: 1100px;
        padding-top: 3rem;
    }
    .mosaic-title {
        font-size: 2.4rem;
        font-weight: 300;
        letter-spacing: 0.05em;
        text-align: center;
        border-bottom: 1px solid #222;
        padding-bottom: 0.5rem;
        margin-bottom: 0.5rem;
    }
    .mosaic-subtitle {
        font-size: 0.8rem;
        font-weight: 300;
        line-height: 1.7;
        margin-bottom: 2.5rem;
    }
    .mosaic-detail {
        font-size: 0.7rem;
        letter-spacing: 0.06em;
        text-transform: uppercase;
        color: #999;
        text-align: center;
    }
    #MainMenu {visibility: hidden;}
    footer {visibility: hidden;}
</style>
""", unsafe_allow_html=True)


# -- Engine ------------------------------------------------------------
# One engine per browser session; still images only, so no camera stream
# is acquired here.
if "engine" not in st.session_state:
    engine = MosaicEngine(config=_DEFAULTS)
    engine.init(Mode.STATIC)
    st.session_state.engine = engine
engine: MosaicEngine = st.session_state.engine


# -- Title -------------------------------------------------------------
st.markdown('<div class="mosaic-title">Shape Mosaic</div>', unsafe_allow_html=True)
st.markdown(
    '<div class="mosaic-subtitle">'
    "The picture is cut into a grid of square cells. Every cell becomes one "
    "shape: the darker the cell, the larger the shape. Shapes take the cell's "
    "average colour, or a single ink colour in monochrome mode."
    "</div>",
    unsafe_allow_html=True,
)

# -- Controls ----------------------------------------------------------
c1, c2, c3 = st.columns(3)
with c1:
    density = st.slider("Grid density", 2, 150, _DEFAULTS.base_density)
    fit_height = st.slider("Working height (px)", 120, 1080, 600, step=20)
with c2:
    shape = st.selectbox(
        "Shape", [s.value for s in Shape],
        index=[s.value for s in Shape].index(_STYLE.shape.value),
    )
    size = st.slider("Shape size", 0.1, 2.0, _STYLE.size_multiplier, step=0.05)
with c3:
    mono = st.checkbox("Monochrome", value=_STYLE.monochrome)
    mono_color = st.color_picker("Ink colour", "#000000") if mono else "#000000"
    animate = st.checkbox("Animate reveal", value=True)

st.markdown("---")

# -- Source ------------------------------------------------------------
source_kind = st.radio("Source", ["Upload", "Camera snapshot"], horizontal=True)
if source_kind == "Upload":
    picked = st.file_uploader(
        "Select image", type=["jpg", "jpeg", "png", "webp", "bmp", "jfif"],
    )
else:
    picked = st.camera_input("Take a snapshot")

# Persist the source so control changes re-render the same picture
if picked is not None:
    st.session_state.source_data = picked.getvalue()
elif "source_data" not in st.session_state:
    st.session_state.source_data = None

if st.session_state.source_data is not None:
    original = Image.open(io.BytesIO(st.session_state.source_data)).convert("RGBA")
    work = original.resize(
        fit_to_height(original.width, original.height, fit_height), Image.LANCZOS,
    )
    frame = SourceFrame.from_image(work)

    engine.style = StyleConfig.from_ui(mono, mono_color, shape, size)
    engine.base_density = density

    placeholder = st.empty()
    engine.on_new_static_buffer(frame)
    if animate:
        engine.queue.run_realtime(
            after_step=lambda: placeholder.image(
                engine.surface.to_image(), use_container_width=True,
            ),
        )
    else:
        engine.queue.run_until_idle()
    result = engine.surface.to_image()
    placeholder.image(result, use_container_width=True)

    st.markdown(
        f'<div class="mosaic-detail">'
        f"{frame.width} &times; {frame.height}, {shape}, density {density}"
        f"</div>",
        unsafe_allow_html=True,
    )

    buf = io.BytesIO()
    result.save(buf, format="PNG")
    _, dl_col, _ = st.columns([1, 2, 1])
    with dl_col:
        st.download_button(
            "SAVE PNG",
            data=buf.getvalue(),
            file_name="shape_mosaic.png",
            mime="image/png",
            use_container_width=True,
        )
else:
    st.markdown(
        '<p style="color: #bbb; font-style: italic; margin-top: 2rem;">'
        "Select an image to begin.</p>",
        unsafe_allow_html=True,
    )
