"""Terminal front end for the forage simulation: settings, CLI, rendering."""
