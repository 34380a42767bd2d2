"""Streaming services: sources, decoders, batching and the pipeline driver."""

from .batch import Batch, Batcher, Outcome, process
from .decoder import StreamDecoder, iter_json_lines, iter_xml_elements
from .licensing import HoldingsLabeler
from .pipeline import ConversionPipeline, RunStats, convert_stream
from .sources import open_source
from .writer import BatchWriter, CollectingWriter, JsonLinesWriter

__all__ = [
    "Batch",
    "Batcher",
    "BatchWriter",
    "CollectingWriter",
    "ConversionPipeline",
    "HoldingsLabeler",
    "JsonLinesWriter",
    "Outcome",
    "RunStats",
    "StreamDecoder",
    "convert_stream",
    "iter_json_lines",
    "iter_xml_elements",
    "open_source",
    "process",
]
