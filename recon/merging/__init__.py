"""Line merging: per-item catalog resolution, dedup and text-discovery merge."""

from recon.merging.line_merger import LineMerger, coerce_item

__all__ = ['LineMerger', 'coerce_item']
