"""Editor core for fretboard neck diagrams."""
