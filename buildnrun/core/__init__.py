"""Core watcher components: ignore rules, events, builds, child process, loop."""
