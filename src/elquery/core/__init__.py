"""Core pipeline: compile options, execute the request, normalize the reply."""
