import numpy as np

def vec(list):
    """Handy shorthand to make a double-precision float array."""
    return np.array(list, dtype=np.float64)

def dot(v1, v2):
    """Dot product of two 3-vectors, as a Python float."""
    return float(np.dot(v1, v2))

def subtract(v1, v2):
    return np.subtract(v1, v2, dtype=np.float64)

def add(v1, v2):
    return np.add(v1, v2, dtype=np.float64)

def scale(v, s):
    """Multiply the vector v by the scalar s."""
    return np.multiply(v, s, dtype=np.float64)

def magnitude(v):
    return float(np.linalg.norm(v))

def normalize(v):
    """Return a unit vector in the direction of the vector v."""
    return v / np.linalg.norm(v)


def as_vec3(value, what='vector'):
    """Convert a length-3 sequence to a vec, or raise ValueError.

    Parameters:
      value : sequence of 3 numbers
      what : str -- name used in the error message
    Return:
      (3,) float64 array
    """
    v = vec(value)
    if v.shape != (3,):
        raise ValueError(f"{what} must have exactly 3 components, got {np.shape(value)}")
    return v
