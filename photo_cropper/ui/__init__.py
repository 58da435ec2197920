"""Qt widgets for the photo cropper (viewport binding and crop dialog)."""
