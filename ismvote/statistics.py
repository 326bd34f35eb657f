"""Bounding box dimension statistics per class."""
import numpy as np


def determine_average_bounding_box_dimensions(bounding_boxes):
    """
    Mean and variance of the two largest half extents of the training boxes of each class.

    bounding_boxes  - {class_id: [BoundingBox]}
    Returns ({class_id: (first_dim, second_dim)}, {class_id: (first_var, second_var)})
    """
    dimensions = {}
    variances = {}
    for class_id, boxes in sorted(bounding_boxes.items()):
        if len(boxes) == 0:
            continue
        # "Radius" of the box, i.e. half the sizes, largest first
        half_sizes = np.sort(np.array([box.size for box in boxes], dtype=np.float64), axis=1)[:, ::-1] / 2
        first, second = half_sizes[:, 0], half_sizes[:, 1]
        dimensions[class_id] = (float(first.mean()), float(second.mean()))
        variances[class_id] = (float(np.mean(first ** 2) - first.mean() ** 2),
                               float(np.mean(second ** 2) - second.mean() ** 2))
    return dimensions, variances
