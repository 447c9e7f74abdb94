"""Alert state layer.

This package is the single owner of alert episodes: it turns the facts
computed for each sample into edge-triggered alert events.
"""
