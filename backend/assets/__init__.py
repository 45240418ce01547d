"""PWA icon and splash-screen generation: planner, synthesizer, storage synchronizer."""
