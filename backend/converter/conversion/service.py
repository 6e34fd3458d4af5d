"""Conversion orchestration: decode, quality search and per-file records, one file at a time."""
import logging
import re
import threading
from typing import Callable, Optional

from converter.conversion.capabilities import Capabilities, get_capabilities
from converter.conversion.compress import Encoder, compress_to_target
from converter.conversion.decode import decode_image
from converter.conversion.encode import encode_image
from converter.conversion.errors import (
    CapabilityError,
    ConversionError,
    EncodeError,
    UnsupportedFormatError,
)
from converter.conversion.models import (
    BatchResult,
    ConversionRecord,
    EncodedResult,
    InputFile,
    OutputCodec,
    PixelSurface,
    RecordStatus,
    SizePreset,
)
from converter.conversion.targets import resolve_target_bytes

logger = logging.getLogger("converter.service")

Decoder = Callable[[InputFile], PixelSurface]
StatusCallback = Callable[[str, bool], None]

_EXTENSION_RE = re.compile(r"\.[^/.]+$")


def replace_extension(name: str, new_ext: str) -> str:
    """Swap the trailing .ext of name for new_ext (appending it if there is none)."""
    return f"{_EXTENSION_RE.sub('', name)}.{new_ext}"


class ConversionService:
    """Converts uploaded images to one output codec under an optional byte budget."""

    def __init__(
        self,
        capabilities: Optional[Capabilities] = None,
        decoder: Decoder = decode_image,
        encoder: Encoder = encode_image,
    ):
        self.capabilities = capabilities or get_capabilities()
        self._decoder = decoder
        self._encoder = encoder
        self._lock = threading.Lock()
        self._records: dict[str, ConversionRecord] = {}
        self._sessions: dict[str, list[str]] = {}
        logger.info("ConversionService initialized (%s)", self.capabilities)

    def _resolve_codec(self, output_format: str) -> OutputCodec:
        codec = OutputCodec.parse(output_format)
        if codec is OutputCodec.HEIC:
            raise CapabilityError("HEIC output is not supported in this environment.")
        if codec is None or not codec.mime_type:
            raise UnsupportedFormatError("Unsupported output format.")
        if not self.capabilities.supports(codec):
            raise CapabilityError(f"{codec.value.upper()} output is not supported in this environment.")
        return codec

    def _encode_file(self, input_file: InputFile, output_format: str, target_bytes: Optional[int]) -> EncodedResult:
        codec = self._resolve_codec(output_format)
        surface = self._decoder(input_file)
        with surface:
            blob = compress_to_target(
                surface,
                codec,
                target_bytes,
                allow_quality=codec.quality_adjustable,
                encoder=self._encoder,
            )
        if not blob:
            raise EncodeError("Conversion failed.")
        return EncodedResult(
            data=blob,
            codec=codec,
            download_name=replace_extension(input_file.name, codec.extension),
        )

    def convert_file(
        self,
        input_file: InputFile,
        output_format: str,
        target_bytes: Optional[int] = None,
    ) -> ConversionRecord:
        """Convert a single file. Never raises; failures come back as a failed record."""
        try:
            result = self._encode_file(input_file, output_format, target_bytes)
        except ConversionError as e:
            logger.warning("Conversion failed for %s: %s", input_file.name, e)
            return self._failed(input_file, str(e), target_bytes)
        except Exception as e:
            logger.exception("Unexpected error converting %s: %s", input_file.name, e)
            return self._failed(input_file, str(e), target_bytes)
        logger.info(
            "Converted %s -> %s (%s -> %s bytes)",
            input_file.name, result.download_name, input_file.size, result.size,
        )
        return ConversionRecord(
            filename=input_file.name,
            input_type=input_file.content_type or "image",
            input_size=input_file.size,
            status=RecordStatus.COMPLETED,
            target_bytes=target_bytes,
            result=result,
        )

    def _failed(self, input_file: InputFile, error: str, target_bytes: Optional[int] = None) -> ConversionRecord:
        return ConversionRecord(
            filename=input_file.name,
            input_type=input_file.content_type or "image",
            input_size=input_file.size,
            status=RecordStatus.FAILED,
            target_bytes=target_bytes,
            error=error or "Conversion error.",
        )

    def _convert_with_preset(
        self,
        input_file: InputFile,
        output_format: str,
        size_preset: str,
        custom_kb: Optional[float],
    ) -> ConversionRecord:
        try:
            target = resolve_target_bytes(input_file.size, size_preset, custom_kb)
        except (ArithmeticError, TypeError, ValueError) as e:
            logger.warning("Could not resolve size target for %s: %s", input_file.name, e)
            return self._failed(input_file, f"Invalid size target: {e}")
        return self.convert_file(input_file, output_format, target)

    def convert_many(
        self,
        files: list[InputFile],
        output_format: str,
        size_preset: str = SizePreset.SAME.value,
        custom_kb: Optional[float] = None,
        on_status: Optional[StatusCallback] = None,
    ) -> BatchResult:
        """Convert files strictly in order; one record per file, failures included."""

        def report(message: str, is_error: bool = False) -> None:
            if on_status:
                on_status(message, is_error)

        if not files:
            message = "Select at least one file."
            report(message, True)
            return BatchResult(records=[], status_message=message, is_error=True)

        report("Converting... please wait.")
        records: list[ConversionRecord] = []
        last_error: Optional[str] = None
        for index, input_file in enumerate(files, start=1):
            record = self._convert_with_preset(input_file, output_format, size_preset, custom_kb)
            records.append(record)
            if record.ok:
                report(f"Converted {record.filename} ({index}/{len(files)}).")
            else:
                last_error = record.error
                report(last_error, True)

        converted = sum(1 for r in records if r.ok)
        message = f"Done. Converted {converted} file(s)."
        report(message)
        logger.info("Batch finished: %s of %s file(s) converted to %s", converted, len(records), output_format)
        return BatchResult(records=records, status_message=message, is_error=False, last_error=last_error)

    def store_run(self, session_id: str, batch: BatchResult) -> None:
        """Replace the session's previous records with this run's records."""
        with self._lock:
            for record_id in self._sessions.pop(session_id, []):
                self._records.pop(record_id, None)
            self._sessions[session_id] = [r.record_id for r in batch.records]
            for r in batch.records:
                self._records[r.record_id] = r

    def get_record(self, record_id: str) -> Optional[ConversionRecord]:
        with self._lock:
            return self._records.get(record_id)

    def list_session(self, session_id: str) -> list[ConversionRecord]:
        with self._lock:
            return [self._records[rid] for rid in self._sessions.get(session_id, []) if rid in self._records]

    def clear_session(self, session_id: str) -> int:
        """Discard a session's records. Returns how many were removed."""
        with self._lock:
            record_ids = self._sessions.pop(session_id, [])
            for rid in record_ids:
                self._records.pop(rid, None)
        return len(record_ids)


# Singleton
_conversion_service: Optional[ConversionService] = None


def init_conversion_service(capabilities: Optional[Capabilities] = None) -> ConversionService:
    global _conversion_service
    _conversion_service = ConversionService(capabilities)
    return _conversion_service


def get_conversion_service() -> ConversionService:
    global _conversion_service
    if _conversion_service is None:
        _conversion_service = ConversionService()
    return _conversion_service
