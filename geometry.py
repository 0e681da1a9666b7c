import numpy as np
from utils import dot, subtract, as_vec3


class RayTracerError(ValueError):
    """Base class for errors raised while building or tracing a scene."""


class InvalidRay(RayTracerError):
    """A ray was given a zero-length direction."""


class InvalidScene(RayTracerError):
    """Scene data (spheres, lights, configuration) is malformed."""


class InvalidViewport(RayTracerError):
    """Viewport dimensions or distance are not positive."""


class Hit:
    def __init__(self, t, point=None, normal=None, sphere=None):
        """Create a Hit with the given data.

        Parameters:
          t : float -- the t value of the intersection along the ray
          point : (3,) -- the 3D point where the intersection happens
          normal : (3,) -- the 3D outward-facing unit normal to the surface at the hit point
          sphere : Sphere -- the sphere that was hit
        """
        self.t = t
        self.point = point
        self.normal = normal
        self.sphere = sphere

    def __bool__(self):
        return self.t < np.inf

# Value to represent absence of an intersection
no_hit = Hit(np.inf)


class Sphere:

    def __init__(self, center, radius, color):
        """Create a sphere with the given center, radius and base color.

        Parameters:
          center : (3,) -- a 3D point specifying the sphere's center
          radius : float -- a positive Python float specifying the sphere's radius
          color : (3,) -- RGB base color, channels in [0, 255]
        """
        try:
            self.center = as_vec3(center, 'sphere center')
            self.color = as_vec3(color, 'sphere color')
        except ValueError as e:
            raise InvalidScene(str(e)) from e
        try:
            radius = float(radius)
        except (TypeError, ValueError) as e:
            raise InvalidScene(f"sphere radius must be a number, got {radius!r}") from e
        if not np.isfinite(radius) or radius <= 0:
            raise InvalidScene(f"sphere radius must be a positive number, got {radius}")
        self.radius = radius

    def __repr__(self):
        return f"Sphere(center={self.center.tolist()}, radius={self.radius}, color={self.color.tolist()})"

    def intersect(self, ray):
        """Computes both intersections between a ray and this sphere.

        Parameters:
          ray : Ray -- the ray to intersect with the sphere
        Return:
          (float, float) -- the two roots, unordered; (inf, inf) on a miss
        """
        return intersect_ray_sphere(ray.origin, ray.direction, self)

    def normal_at(self, point):
        """Outward unit normal at a point on the surface."""
        outward = subtract(point, self.center)
        return outward / np.linalg.norm(outward)


def intersect_ray_sphere(origin, direction, sphere):
    """Solve |origin + t * direction - center|^2 = radius^2 for t.

    The direction does not need to be normalized.  Both roots are returned
    without ordering them; a ray that misses gets (inf, inf).
    """
    sphere_vec = subtract(origin, sphere.center)
    a = dot(direction, direction)
    if a == 0:
        raise InvalidRay("ray direction must be non-zero")
    b = 2 * dot(sphere_vec, direction)
    c = dot(sphere_vec, sphere_vec) - sphere.radius * sphere.radius
    discriminant = b * b - 4 * a * c
    if discriminant < 0:
        return np.inf, np.inf
    disc_sqrt = np.sqrt(discriminant)
    t1 = (-b + disc_sqrt) / (2 * a)
    t2 = (-b - disc_sqrt) / (2 * a)
    return float(t1), float(t2)
