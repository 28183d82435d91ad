"""Pure domain core: clock, closed vocabularies, journal line rules."""
