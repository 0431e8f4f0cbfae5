"""An OpenAI-compatible proxy for NVIDIA NIM chat completion backends."""

__version__ = "0.1.0"

from .config import ProxySettings, load_settings
from .api import create_app
from .backends import BackendClient
from .framing import LineReassembler
from .reasoning import EventRewriter, ReasoningSplitter, merge_reasoning
from .resolver import resolve_model
from .streaming import StreamRelay
from .transformer import transform_response
from .translator import build_backend_request
