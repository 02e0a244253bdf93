"""Content agents: planner, writer, reviewer, image curator, researcher, slide planner."""
