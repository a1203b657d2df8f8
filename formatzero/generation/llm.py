"""Ask a multimodal chat model to turn class notes into tagged text.

The request is a single human message: the study-guide instruction
followed by one content block per uploaded photo or recording, in
upload order.  The reply is plain text in the tag grammar that
:mod:`formatzero.compiler` understands (title on line 1, then
``SECCIÓN:``, ``CONTEXTO:``, ``ANALOGÍA:``, ``PREGUNTA:``, ``NOTA:`` …).

Supported providers (set ``llm_provider`` in config.txt):

* **google** — Google Gemini API (default; requires ``GOOGLE_API_KEY``)
* **ollama** — local Ollama server with a vision model
* **openai** — OpenAI API (requires ``OPENAI_API_KEY`` in .env)
* **anthropic** — Anthropic API (requires ``ANTHROPIC_API_KEY``)

Only Gemini accepts audio; the other providers take images only.

API keys are loaded from a ``.env`` file at the project root via
python-dotenv (see ``.env.example``).

Usage (programmatic)::

    from formatzero.generation.llm import generate_study_text
    text = generate_study_text(parts)
"""

import logging
import textwrap

from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_ollama import ChatOllama

from formatzero.config import CFG
from formatzero.generation.media import MediaPart

logger = logging.getLogger(__name__)

# ── Defaults (read from config.txt, fall back to built-in) ──────────
DEFAULT_PROVIDER: str = str(CFG.get("llm_provider", "google"))
DEFAULT_MODEL: str = str(CFG.get("llm_model", "gemini-2.5-flash"))
DEFAULT_TEMPERATURE: float = float(CFG.get("temperature", "0.4"))

# Shown to the user whenever the model call fails.
RETRY_MESSAGE = "Servidor ocupado. Intenta de nuevo."

# ── Provider → default model mapping ───────────────────────────────
PROVIDER_DEFAULTS: dict[str, str] = {
    "google": "gemini-2.5-flash",
    "ollama": "llama3.2-vision",
    "openai": "gpt-4o-mini",
    "anthropic": "claude-sonnet-4-20250514",
}

# ── Provider → curated model lists ─────────────────────────────────
PROVIDER_MODELS: dict[str, list[str]] = {
    "google": ["gemini-2.5-flash", "gemini-2.5-pro", "gemini-2.0-flash"],
    "ollama": ["llama3.2-vision", "llava", "gemma3"],
    "openai": ["gpt-4o-mini", "gpt-4o", "gpt-4.1", "gpt-4.1-mini"],
    "anthropic": ["claude-sonnet-4-5", "claude-haiku-4-5", "claude-opus-4-6"],
}

# Providers whose chat models accept inline audio.
AUDIO_PROVIDERS = frozenset({"google"})

# ── Study-guide instruction ─────────────────────────────────────────
STUDY_GUIDE_PROMPT = textwrap.dedent("""\
    ERES UN EXPERTO EN NEUROCIENCIA Y PEDAGOGÍA DE ALTO NIVEL.
    Analiza los archivos adjuntos (fotos y audio) para crear una "Ruta de Aprendizaje Profundo".
    TU OBJETIVO: No solo transcribas. Logra que el usuario ENTIENDA el tema en la primera lectura usando técnicas de aprendizaje acelerado.

    REGLAS DE CONTENIDO (BASADAS EN NEUROCIENCIA):
    1. CONTEXTO PRIMERO: Antes de dar un concepto, explica brevemente PARA QUÉ sirve.
    2. ANALOGÍAS: Crea una analogía con algo cotidiano.
    3. EXPLICACIÓN "FEYNMAN": Usa un lenguaje claro (12 años) sin perder rigor técnico.
    4. INTERROGACIÓN ACTIVA: Plantea preguntas que obliguen al cerebro a pensar.

    FORMATO (una idea por línea):
    Línea 1: el título de la guía, sin etiqueta.
    SECCIÓN: nombre de cada sección.
    CONTEXTO: para qué sirve el concepto que sigue.
    ANALOGÍA: comparación cotidiana.
    PREGUNTA: o RETO: pregunta de memoria activa.
    NOTA: advertencia o error frecuente.
    El resto de líneas son explicación normal, sin etiqueta.

    PROHIBIDO: Asteriscos (**), almohadillas (#), saludos o comentarios de chatbot.
""")


class TransientServiceError(RuntimeError):
    """The generation service failed; the user may simply retry.

    ``str(exc)`` is the user-facing retry message; ``exc.detail`` keeps
    the underlying error text for logs.
    """

    def __init__(self, message: str = RETRY_MESSAGE, detail: str = ""):
        super().__init__(message)
        self.detail = detail


# ── LLM interaction ─────────────────────────────────────────────────


def get_llm(
    model: str = DEFAULT_MODEL,
    temperature: float = DEFAULT_TEMPERATURE,
    provider: str = DEFAULT_PROVIDER,
):
    """Create a LangChain chat model for the given provider.

    Parameters
    ----------
    model : str
        Model name/tag for the chosen provider.
    temperature : float
        Sampling temperature.
    provider : str
        One of ``"google"``, ``"ollama"``, ``"openai"``,
        ``"anthropic"``.

    Returns
    -------
    BaseChatModel
        A LangChain chat model instance.

    Raises
    ------
    ValueError
        If *provider* is not recognised.
    ImportError
        If the required provider package is not installed.
    """
    provider = provider.lower().strip()
    logger.info(
        f"Initialising LLM: provider={provider}, model={model}, temp={temperature}"
    )

    if provider == "google":
        return ChatGoogleGenerativeAI(model=model, temperature=temperature)

    if provider == "ollama":
        return ChatOllama(model=model, temperature=temperature)

    if provider == "openai":
        try:
            from langchain_openai import ChatOpenAI
        except ImportError:
            raise ImportError(
                "langchain-openai is required for the openai provider.\n"
                "  Run: pip install langchain-openai"
            )
        return ChatOpenAI(model=model, temperature=temperature)

    if provider == "anthropic":
        try:
            from langchain_anthropic import ChatAnthropic
        except ImportError:
            raise ImportError(
                "langchain-anthropic is required for the anthropic provider.\n"
                "  Run: pip install langchain-anthropic"
            )
        return ChatAnthropic(model=model, temperature=temperature)

    raise ValueError(
        f"Unknown llm_provider '{provider}'. Supported: {', '.join(PROVIDER_DEFAULTS)}"
    )


def media_block(part: MediaPart) -> dict:
    """Return the LangChain base64 content block for *part*."""
    return {
        "type": "audio" if part.is_audio else "image",
        "source_type": "base64",
        "data": part.data,
        "mime_type": part.mime_type,
    }


def build_message(parts: list[MediaPart], prompt: str = STUDY_GUIDE_PROMPT) -> HumanMessage:
    """Build the request: instruction text first, then every part in order."""
    content: list[dict] = [{"type": "text", "text": prompt}]
    content.extend(media_block(p) for p in parts)
    return HumanMessage(content=content)


def response_text(response) -> str:
    """Extract plain text from a chat model response.

    Chat models return an AIMessage whose ``content`` is either a string
    or a list of content blocks; plain strings from some wrappers are
    accepted too.
    """
    content = getattr(response, "content", response)
    if isinstance(content, list):
        content = "\n".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in content
        )
    return str(content).strip()


# ── Generate ────────────────────────────────────────────────────────


def generate_study_text(
    parts: list[MediaPart],
    prompt: str = STUDY_GUIDE_PROMPT,
    model: str = DEFAULT_MODEL,
    temperature: float = DEFAULT_TEMPERATURE,
    provider: str = DEFAULT_PROVIDER,
) -> str:
    """Send the notes to the model and return its raw tagged text.

    Parameters
    ----------
    parts : list[MediaPart]
        Encoded uploads, in the order the model should read them.
    prompt : str
        Instruction placed before the media parts.
    model, temperature, provider
        LLM configuration, as for :func:`get_llm`.

    Returns
    -------
    str
        The model's reply, untouched apart from outer whitespace.

    Raises
    ------
    ValueError
        If *parts* is empty, or holds audio for a provider without
        audio input.
    TransientServiceError
        If the model call fails for any reason.
    """
    if not parts:
        raise ValueError("At least one image or audio file is required.")

    provider = provider.lower().strip()
    if provider not in AUDIO_PROVIDERS and any(p.is_audio for p in parts):
        raise ValueError(
            f"Provider '{provider}' does not accept audio. "
            f"Use one of: {', '.join(sorted(AUDIO_PROVIDERS))}"
        )

    logger.info(
        f"Generating study text  (provider={provider}, model={model}, "
        f"parts={len(parts)})"
    )

    message = build_message(parts, prompt)
    try:
        llm = get_llm(model=model, temperature=temperature, provider=provider)
        response = llm.invoke([message])
    except (ValueError, ImportError):
        raise
    except Exception as exc:
        logger.error(f"Generation failed ({provider}/{model}): {exc}")
        raise TransientServiceError(detail=str(exc)) from exc

    text = response_text(response)
    logger.info(f"Study text generated ({len(text)} chars)")
    return text
