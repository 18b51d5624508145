"""Selection side effects and audio output."""
