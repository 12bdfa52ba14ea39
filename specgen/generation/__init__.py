"""
Generation module - fiction/image pipeline components.

- Prompt building and visual element extraction
- Text (Claude / Ollama) and image (OpenAI) providers
- Optional image post-processing
- The orchestrator that sequences them
"""

from .visual_extractor import extract_visual_elements
from .prompt_builder import (
    build_fiction_prompt,
    build_image_prompt,
    count_words,
    extract_title,
)
from .model_provider import (
    ClaudeProvider,
    GenerationResult,
    ModelProvider,
    OllamaProvider,
    get_provider,
    parse_model_spec,
)
from .image_provider import (
    ImageGenerationResult,
    ImageProvider,
    OpenAIImageProvider,
)
from .image_processing import (
    PIL_AVAILABLE,
    ImageProcessor,
    PillowImageProcessor,
    ProcessedImage,
    UnavailableImageProcessor,
    get_image_processor,
)
from .orchestrator import (
    CombinedResult,
    FictionResult,
    GenerationOrchestrator,
    GenerationRequest,
    GenerationType,
    ImageResult,
)

__all__ = [
    "extract_visual_elements",
    "build_fiction_prompt",
    "build_image_prompt",
    "count_words",
    "extract_title",
    "ClaudeProvider",
    "GenerationResult",
    "ModelProvider",
    "OllamaProvider",
    "get_provider",
    "parse_model_spec",
    "ImageGenerationResult",
    "ImageProvider",
    "OpenAIImageProvider",
    "PIL_AVAILABLE",
    "ImageProcessor",
    "PillowImageProcessor",
    "ProcessedImage",
    "UnavailableImageProcessor",
    "get_image_processor",
    "CombinedResult",
    "FictionResult",
    "GenerationOrchestrator",
    "GenerationRequest",
    "GenerationType",
    "ImageResult",
]
