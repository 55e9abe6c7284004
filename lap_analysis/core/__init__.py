"""Detection, segmentation and sector propagation."""
