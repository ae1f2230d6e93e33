"""
Streamlit web interface for screen-sequence prototype generation.

Upload screenshots (or zips of screenshots), arrange them in navigation
order, generate a Next.js codebase and download it as a zip archive.
"""

import asyncio

import streamlit as st
from dotenv import load_dotenv

from prototype_gen.models import NotificationLevel
from prototype_gen.pipeline.generation import DEFAULT_MODELS, LangChainSynthesisService
from prototype_gen.session import PrototypeSession

# Load environment variables
load_dotenv()

# Page configuration
st.set_page_config(
    page_title="Screens to Prototype",
    page_icon="🧩",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Initialize session state
if "prototype_session" not in st.session_state:
    st.session_state.prototype_session = PrototypeSession()
if "uploader_key" not in st.session_state:
    st.session_state.uploader_key = 0
if "service_config" not in st.session_state:
    st.session_state.service_config = None


NOTIFICATION_ICONS = {
    NotificationLevel.SUCCESS: "✅",
    NotificationLevel.INFO: "ℹ️",
    NotificationLevel.WARNING: "⚠️",
    NotificationLevel.ERROR: "❌",
}


def show_notifications(session: PrototypeSession):
    """Render pending session notifications as toasts."""
    for note in session.drain_notifications():
        text = f"**{note.title}**"
        if note.message:
            text += f"  \n{note.message}"
        st.toast(text, icon=NOTIFICATION_ICONS[note.level])


def configure_service(session: PrototypeSession, provider: str, model_name: str, temperature: float, max_tokens: int):
    """(Re)build the synthesis service when the sidebar settings change."""
    config = (provider, model_name, temperature, max_tokens)
    if st.session_state.service_config == config and session.synthesizer is not None:
        return
    try:
        session.set_service(LangChainSynthesisService(
            provider=provider,
            model_name=model_name,
            temperature=temperature,
            max_tokens=max_tokens,
            session_id=session.session_id,
        ))
        st.session_state.service_config = config
    except ValueError as e:
        st.sidebar.error(f"❌ {e}")


def main():
    """Main application entry point."""
    session: PrototypeSession = st.session_state.prototype_session

    st.title("🧩 Screens to Prototype")
    st.caption("Upload UI screenshots in the order users should move through them.")

    with st.sidebar:
        st.header("⚙️ Configuration")
        provider = st.selectbox("Provider", list(DEFAULT_MODELS), index=0)
        if provider == "openai":
            model_options = ["gpt-4o", "gpt-4o-mini", "gpt-4-turbo"]
        else:
            model_options = ["claude-3-5-sonnet-latest", "claude-3-opus-20240229"]
        model_name = st.selectbox("Model", model_options, index=0)
        temperature = st.slider("Temperature", 0.0, 1.0, 0.2, 0.1)
        max_tokens = st.number_input("Max Tokens", min_value=2048, max_value=16384, value=8192, step=1024)

    configure_service(session, provider, model_name, temperature, int(max_tokens))

    upload_section(session)
    st.divider()
    sequence_section(session)
    st.divider()
    result_section(session)

    show_notifications(session)


def upload_section(session: PrototypeSession):
    st.subheader("📤 Add Screenshots")
    uploads = st.file_uploader(
        "Images or zip archives",
        type=["png", "jpg", "jpeg", "zip"],
        accept_multiple_files=True,
        key=f"uploader_{st.session_state.uploader_key}",
    )
    if st.button("Add to sequence", disabled=not uploads):
        with st.spinner("Reading files..."):
            asyncio.run(session.ingest(uploads))
        st.session_state.uploader_key += 1
        st.rerun()


def sequence_section(session: PrototypeSession):
    st.subheader(f"🗂️ Screen Order ({len(session.sequence)})")

    if not session.sequence:
        st.info("No screenshots yet. The first screenshot becomes the home page.")
        return

    entries = session.sequence.entries
    columns = st.columns(min(len(entries), 4))
    for index, entry in enumerate(entries):
        with columns[index % len(columns)]:
            label = "Home" if index == 0 else f"Screen {index + 1}"
            st.image(entry.payload_bytes(), caption=f"{label}: {entry.name}", use_container_width=True)
            left, right, remove = st.columns(3)
            if left.button("◀", key=f"left_{entry.id}", disabled=index == 0):
                session.reorder(index, index - 1)
                st.rerun()
            if right.button("▶", key=f"right_{entry.id}", disabled=index == len(entries) - 1):
                session.reorder(index, index + 1)
                st.rerun()
            if remove.button("✖", key=f"remove_{entry.id}"):
                session.remove_image(entry.id)
                st.rerun()


def result_section(session: PrototypeSession):
    generate_col, clear_col = st.columns([3, 1])

    with generate_col:
        if st.button("🚀 Generate Codebase", type="primary", disabled=session.is_generating):
            with st.spinner("🔄 Generating codebase..."):
                asyncio.run(session.generate())

    with clear_col:
        if st.button("🗑️ Clear All"):
            session.clear_all()
            st.rerun()

    result = session.result
    if result is None:
        return

    st.subheader("💻 Generated Files")
    meta_col1, meta_col2, meta_col3 = st.columns(3)
    meta_col1.metric("Files", len(result.file_set))
    meta_col2.metric("Screens", result.screen_count)
    if result.prompt_tokens and result.completion_tokens:
        meta_col3.metric("Total Tokens", f"{result.prompt_tokens + result.completion_tokens:,}")

    for path, content in result.file_set.items():
        with st.expander(path, expanded=False):
            language = path.rsplit(".", 1)[-1] if "." in path else None
            st.code(content, language=language)

    artifact = session.download()
    if artifact is not None:
        st.download_button(
            label="⬇️ Download Codebase",
            data=artifact.data,
            file_name=artifact.file_name,
            mime=artifact.mime,
            key="download_codebase",
        )


if __name__ == "__main__":
    main()
