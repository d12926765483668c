"""Worker runners for the generator and processor stages."""
