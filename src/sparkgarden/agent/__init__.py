"""Agent package: Gemini client, analysis pipeline and chat tool loop."""
