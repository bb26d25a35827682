from .audio import AudioSpeechAdapter, AudioTranscriptionAdapter, AudioTranslationAdapter
from .base import EndpointAdapter
from .factory import ADAPTER_CLASSES, AdapterFactory
from .image import ImageEditAdapter, ImageGenerationAdapter, ImageVariationAdapter
from .text import ChatCompletionAdapter, ResponseApiAdapter

__all__ = [
    "ADAPTER_CLASSES",
    "AdapterFactory",
    "AudioSpeechAdapter",
    "AudioTranscriptionAdapter",
    "AudioTranslationAdapter",
    "ChatCompletionAdapter",
    "EndpointAdapter",
    "ImageEditAdapter",
    "ImageGenerationAdapter",
    "ImageVariationAdapter",
    "ResponseApiAdapter",
]
