from .service import ConversionService
from .models import BatchResult, ConversionRecord, InputFile, OutputCodec, SizePreset

__all__ = ["ConversionService", "BatchResult", "ConversionRecord", "InputFile", "OutputCodec", "SizePreset"]
