"""Protocols for the external collaborators of the pipeline."""

from vioinject.protocols.imaging_protocol import ImagingServiceProtocol
from vioinject.protocols.mastering_protocol import MasteringResult, MasteringToolProtocol


__all__ = [
    "ImagingServiceProtocol",
    "MasteringResult",
    "MasteringToolProtocol",
]
