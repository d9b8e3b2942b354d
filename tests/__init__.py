"""Test package for GnoPi.

Core modules (digit corpus, window buffer, preferences codec, timeout ticker
and session engine) are tested directly with a fake clock.  The pygame shell
is smoke-tested headlessly using SDL's dummy video driver, so no real window
is opened.  Run ``pytest`` from the project root.
"""
