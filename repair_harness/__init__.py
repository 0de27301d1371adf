"""Visual regression harness for region-repair engines.

Drives an external region-repair engine across a catalog of synthetic and
image-backed test cases. Each case is rendered onto its own surface, a hole
rectangle is resolved against that surface, and the engine is asked to
repair it. One case's failure never aborts the run.

Layers (one-way dependency, leaf first):
    geometry → surface, selector, pointer → catalog, options, engine
    → invoker, reporter → runner → page, interactive → cli

Key invariants:
    - Buffer space: origin top-left, +X right, +Y down, integer pixels
    - One surface per case; surfaces never share a pixel buffer
    - Cases run strictly in catalog order, one at a time
    - DisplayOptions is read once at the start of each run
"""

__version__ = "0.3.0"
