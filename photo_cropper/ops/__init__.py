"""Use-case layer.

High-level photo workflows invoked by host screens. The crop engine and the
intake decoder live under their feature packages (`photo_cropper.crop`,
`photo_cropper.intake`).
"""
