"""Streamlit UI for FormatZero.

Upload photos of your notebook or class recordings, spend one credit,
and download a styled PDF study guide.  The model call runs in a
background thread so the elapsed timer keeps ticking while it works.

Launch:
    streamlit run app.py
"""

import os
import queue
import threading
import time

import streamlit as st

# ── Page config (must be first Streamlit call) ──────────────────────
st.set_page_config(
    page_title="FormatZero",
    page_icon="📘",
    layout="wide",
)

from formatzero.compiler.blocks import (  # noqa: E402
    AnalogyNote,
    ChallengeQuestion,
    ContextNote,
    Heading,
    StructuredDocument,
    WarningNote,
)
from formatzero.config import config_as_text  # noqa: E402
from formatzero.credits import (  # noqa: E402
    CreditLedger,
    OutOfCreditsError,
    has_credit,
    purchase_link,
)
from formatzero.generation.guide import GuideResult, create_guide  # noqa: E402
from formatzero.generation.llm import (  # noqa: E402
    DEFAULT_MODEL,
    DEFAULT_PROVIDER,
    DEFAULT_TEMPERATURE,
    PROVIDER_DEFAULTS,
    PROVIDER_MODELS,
    TransientServiceError,
)
from formatzero.generation.media import (  # noqa: E402
    ACCEPTED_EXTENSIONS,
    SourceFile,
    guess_mime_type,
)


@st.cache_resource
def _get_ledger() -> CreditLedger:
    return CreditLedger()


ledger = _get_ledger()

if "guide_result" not in st.session_state:
    st.session_state.guide_result = None


# ── Sidebar: account & generation settings ──────────────────────────
with st.sidebar:
    st.header("👤 Cuenta")
    account = st.text_input("Correo", value="", placeholder="tu@correo.com").strip()
    credits = ledger.balance(account) if account else None
    if credits is not None:
        st.metric("Créditos restantes", credits)

    st.divider()

    st.subheader("🤖 Generación")
    provider_list = list(PROVIDER_DEFAULTS.keys())
    default_provider_idx = (
        provider_list.index(DEFAULT_PROVIDER)
        if DEFAULT_PROVIDER in provider_list
        else 0
    )
    provider = st.selectbox("LLM Provider", provider_list, index=default_provider_idx)

    model_options = PROVIDER_MODELS.get(provider, [])
    default_model = (
        DEFAULT_MODEL
        if provider == DEFAULT_PROVIDER
        else PROVIDER_DEFAULTS.get(provider, "")
    )
    display_options = list(model_options) + ["Other…"]
    default_model_idx = (
        model_options.index(default_model) if default_model in model_options else 0
    )
    model_choice = st.selectbox("Model", display_options, index=default_model_idx)
    if model_choice == "Other…":
        model = st.text_input("Custom model name", value="")
    else:
        model = model_choice

    temperature = st.slider(
        "Temperature",
        min_value=0.0,
        max_value=1.0,
        value=DEFAULT_TEMPERATURE,
        step=0.05,
    )

    with st.expander("config.txt", expanded=False):
        st.code(config_as_text(), language="ini")


# ── Preview of the compiled guide ───────────────────────────────────


def _render_preview(doc: StructuredDocument) -> None:
    """Show the compiled blocks with Streamlit widgets."""
    st.subheader(doc.title)
    st.caption(f"RUTA DE APRENDIZAJE • {doc.author}".upper())
    if doc.is_empty:
        st.markdown("_Cargando conocimiento..._")
        return
    for block in doc.blocks:
        if isinstance(block, Heading):
            st.markdown(f"#### {block.label.upper()}")
        elif isinstance(block, ContextNote):
            st.info(f"**¿Por qué importa esto?**  \n{block.payload}")
        elif isinstance(block, AnalogyNote):
            st.markdown(f"> 💡 _Analogía: {block.payload}_")
        elif isinstance(block, ChallengeQuestion):
            st.success(f"**Reto de Memoria Activa**  \n{block.payload}")
        elif isinstance(block, WarningNote):
            st.warning(f"⚠️ **{block.payload}**")
        else:
            st.markdown(block.payload)


# ── Main area ───────────────────────────────────────────────────────
st.title("📘 FormatZero")
st.caption("Sube fotos de tu libreta o audios de clase y recibe una guía de estudio en PDF.")

if credits == 0:
    st.warning("¡Agotaste tus guías de regalo! Compra más créditos para seguir estudiando.")
    link = purchase_link(account)
    if link:
        st.link_button("Comprar créditos", link)

uploads = st.file_uploader(
    "Sube tus fuentes",
    type=[ext.lstrip(".") for ext in ACCEPTED_EXTENSIONS],
    accept_multiple_files=True,
    help="Fotos o grabaciones de clase. Se leen en el orden en que las subes.",
)

can_generate = bool(uploads) and bool(account) and has_credit(credits)
if not account:
    st.info("Escribe tu correo en la barra lateral para usar tus créditos.")

if st.button("✨ Procesar", type="primary", disabled=not can_generate):
    files = [
        SourceFile(
            name=u.name,
            mime_type=u.type or guess_mime_type(u.name),
            content=u.getvalue(),
        )
        for u in uploads
    ]

    status = st.status(f"🧠 Analizando con {provider}/{model}…", expanded=False)
    timer_placeholder = st.empty()
    start_time = time.time()

    # Run the pipeline in a background thread so the main thread
    # can tick the elapsed timer every second while the model works.
    result_q: queue.Queue = queue.Queue()

    def _run_guide() -> None:
        """Push the result (or the exception) onto the queue."""
        try:
            result_q.put(create_guide(
                files,
                author=account,
                account=account,
                ledger=ledger,
                provider=provider,
                model=model,
                temperature=temperature,
            ))
        except Exception as exc:
            result_q.put(exc)

    worker = threading.Thread(target=_run_guide, daemon=True)
    worker.start()

    outcome = None
    while outcome is None:
        try:
            outcome = result_q.get(timeout=1)
        except queue.Empty:
            elapsed = time.time() - start_time
            mins, secs = divmod(int(elapsed), 60)
            timer_placeholder.info(f"⏳ Hackeando tu aprendizaje… {mins:02d}:{secs:02d}")

    timer_placeholder.empty()

    if isinstance(outcome, GuideResult):
        mins, secs = divmod(int(outcome.elapsed_seconds), 60)
        status.update(
            label=f"✅ Guía lista en {mins:02d}:{secs:02d}",
            state="complete",
        )
        st.session_state.guide_result = outcome
        st.rerun()
    else:
        status.update(label="❌ Error", state="error")
        if isinstance(outcome, (TransientServiceError, OutOfCreditsError, ValueError)):
            st.error(str(outcome))
        elif isinstance(outcome, ImportError):
            st.error(f"❌ Missing package: {outcome}")
        else:
            st.error(f"Error al procesar. Intenta de nuevo. ({outcome})")


# ── Persistent result (survives re-runs) ────────────────────────────
result: GuideResult | None = st.session_state.guide_result
if result is not None:
    doc = result.document
    left_col, right_col = st.columns([1, 2])
    with left_col:
        if os.path.isfile(result.pdf_path):
            with open(result.pdf_path, "rb") as fh:
                st.download_button(
                    "⬇️ Descargar PDF",
                    data=fh.read(),
                    file_name=doc.filename,
                    mime="application/pdf",
                )
        st.caption(f"📄 `{result.pdf_path}`")
        if result.credits_left is not None:
            st.caption(f"Créditos restantes: {result.credits_left}")
    with right_col:
        _render_preview(doc)
