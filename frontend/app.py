import streamlit as st
from concurrent import futures
from datetime import datetime

from palette_client import UploadClient, UploadedImage
from palette_client import config, states


@st.cache_resource
def get_worker_pool():
    """One pool for every browser session of this server process."""
    return futures.ThreadPoolExecutor(max_workers=4, thread_name_prefix="palette-upload")


# --- Initialize session state ---
if 'upload_client' not in st.session_state:
    st.session_state.upload_client = UploadClient(executor=get_worker_pool())

if 'last_file_id' not in st.session_state:
    st.session_state.last_file_id = None

if 'history' not in st.session_state:
    st.session_state.history = [] # Past analyses: [ {filename, result, timestamp}, ... ]

client: UploadClient = st.session_state.upload_client

# --- Helper Functions ---
def add_to_history(filename, result):
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    st.session_state.history.insert(0, {
        "filename": filename,
        "result": result,
        "timestamp": timestamp
    })


def render_palette(result):
    st.markdown(f"**Skin tone:** {result.skin_tone.title()} &nbsp;·&nbsp; **Season:** {result.season.title()}")
    for color in result.colors:
        swatch_col, text_col = st.columns([1, 5])
        with swatch_col:
            st.markdown(
                f"<div style='background:{color.hex};width:64px;height:64px;border-radius:8px'></div>",
                unsafe_allow_html=True
            )
        with text_col:
            st.markdown(f"**{color.name}** `{color.hex}`")
            st.caption(color.usage)
            st.progress(color.confidence, text=f"Confidence {color.confidence:.0%}")


# --- Main App Interface ---
st.title("🎨 Palette Advisor")
st.write("Upload a photo and get outfit and makeup colors that suit you.")

uploaded = st.file_uploader(
    "Choose a photo",
    type=["jpg", "jpeg", "png", "webp", "gif"],
    help=f"Up to {config.MAX_UPLOAD_BYTES // (1024 * 1024)} MB"
)

# Streamlit reruns the script on every interaction; only a new file starts an analysis.
if uploaded is not None and uploaded.file_id != st.session_state.last_file_id:
    st.session_state.last_file_id = uploaded.file_id
    image = UploadedImage(filename=uploaded.name, content_type=uploaded.type, content=uploaded.getvalue())
    with st.spinner("🤖 Analyzing your colors... Please wait."):
        client.submit(image)
        client.wait(timeout=config.REQUEST_TIMEOUT_SECONDS + 5)
    if isinstance(client.state, states.Ready):
        add_to_history(image.filename, client.state.result)

state = client.state

# --- Preview ---
if state.preview and uploaded is not None:
    st.image(uploaded.getvalue(), caption="Your photo", width=240)

# --- Display Error Messages ---
if isinstance(state, states.Failed) and state.error:
    st.error(f"⚠️ {state.error.message}")
    if state.result:
        st.caption("Showing your previous palette.")

# --- Results Section ---
st.subheader("Your Palette")
if isinstance(state, (states.Previewing, states.Loading)):
    st.info("Analysis in progress...")
elif state.result:
    render_palette(state.result)
else:
    st.markdown("_Your recommended colors will appear here._")


# --- History Sidebar ---
st.sidebar.header("📜 Analysis History")
if not st.session_state.history:
    st.sidebar.caption("No analyses yet.")
else:
    for item in st.session_state.history:
        with st.sidebar.expander(f"{item['timestamp']} - {item['filename'][:30]}"):
            st.markdown(f"**{item['result'].skin_tone.title()} / {item['result'].season.title()}**")
            for color in item['result'].colors:
                st.markdown(f"- {color.name} `{color.hex}`")


st.markdown("---")
st.caption("Palette Advisor Prototype")
