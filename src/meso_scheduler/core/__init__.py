"""Pure engine: completion, iteration state, schedule projection and progress."""
