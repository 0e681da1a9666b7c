import enum

import numpy as np
from geometry import Sphere, Hit, no_hit, RayTracerError, InvalidScene, InvalidViewport
from ImLite import Canvas
from utils import vec, dot, add, scale, subtract, magnitude, as_vec3

"""
Core implementation of the ray tracer.
"""

BACKGROUND_COLOR = (255, 255, 255)


class Ray:

    def __init__(self, origin, direction, start=0., end=np.inf):
        """Create a ray with the given origin and direction.

        Parameters:
          origin : (3,) -- the start point of the ray, a 3D point
          direction : (3,) -- the direction of the ray, not necessarily normalized
          start, end : float -- the closed range of t values accepted as hits
        """
        self.origin = np.array(origin, np.float64)
        self.direction = np.array(direction, np.float64)
        self.start = start
        self.end = end

    def at(self, t):
        return add(self.origin, scale(self.direction, t))


class Viewport:

    def __init__(self, size_x=1., size_y=1., distance=1.):
        """The rectangle, `distance` in front of the eye, that camera rays pass through."""
        self.size_x = float(size_x)
        self.size_y = float(size_y)
        self.distance = float(distance)
        if not (self.size_x > 0 and self.size_y > 0):
            raise InvalidViewport(f"viewport size must be positive, got {self.size_x}x{self.size_y}")
        if not self.distance > 0:
            raise InvalidViewport(f"viewport distance must be positive, got {self.distance}")


class Camera:

    def __init__(self, eye=vec([0, 0, 0]), viewport=None):
        """Create a camera looking down +z from the eye point.

        Parameters:
          eye : (3,) -- the eye point all camera rays start from
          viewport : Viewport -- projection plane; defaults to 1x1 at distance 1
        """
        self.eye = as_vec3(eye, 'camera eye')
        self.viewport = viewport if viewport is not None else Viewport()

    def canvas_to_viewport(self, point, canvas_width, canvas_height):
        """Map a pixel offset from the canvas center (y up) to a point on the viewport.

        The point is used as-is as the ray direction, so it is not normalized.
        """
        return vec([
            point[0] * self.viewport.size_x / canvas_width,
            point[1] * self.viewport.size_y / canvas_height,
            self.viewport.distance,
        ])

    def generate_ray(self, point, canvas_width, canvas_height):
        """Compute the ray corresponding to a centered pixel coordinate."""
        return Ray(self.eye, self.canvas_to_viewport(point, canvas_width, canvas_height))


class LightKind(enum.Enum):
    AMBIENT = 'ambient'
    POINT = 'point'
    DIRECTIONAL = 'directional'


class AmbientLight:
    kind = LightKind.AMBIENT

    def __init__(self, intensity):
        """Create an ambient light of given intensity
        """
        self.intensity = float(intensity)


class PointLight:
    kind = LightKind.POINT

    def __init__(self, intensity, position):
        """Create a point light at given position and with given intensity"""
        self.intensity = float(intensity)
        self.position = as_vec3(position, 'point light position')


class DirectionalLight:
    kind = LightKind.DIRECTIONAL

    def __init__(self, intensity, direction):
        """Create a light arriving from a fixed direction, whatever the surface point.

        direction points from the surface towards the light.
        """
        self.intensity = float(intensity)
        self.direction = as_vec3(direction, 'directional light direction')


def compute_lighting(point, normal, lights):
    """Total light intensity reaching a surface point.

    Parameters:
      point : (3,) -- the shaded point
      normal : (3,) -- unit outward normal at the point
      lights : sequence of AmbientLight, PointLight, DirectionalLight
    Return:
      float -- non-negative, unbounded sum of ambient and diffuse terms
    """
    intensity = 0.0
    for light in lights:
        kind = getattr(light, 'kind', None)
        if kind is LightKind.AMBIENT:
            intensity += light.intensity
            continue
        elif kind is LightKind.POINT:
            light_vec = subtract(light.position, point)
        elif kind is LightKind.DIRECTIONAL:
            light_vec = light.direction
        else:
            raise InvalidScene(f"unknown light kind: {kind!r}")

        n_dot_l = dot(normal, light_vec)
        # surfaces facing away get nothing, not a negative term
        if n_dot_l > 0:
            intensity += light.intensity * n_dot_l / magnitude(light_vec)
    return intensity


class Scene:

    def __init__(self, spheres, lights=(), bg_color=BACKGROUND_COLOR):
        """Create a scene containing the given spheres and lights.
        """
        self.spheres = tuple(spheres)
        self.lights = tuple(lights)
        try:
            self.bg_color = as_vec3(bg_color, 'background color')
        except ValueError as e:
            raise InvalidScene(str(e)) from e

    def intersect(self, ray):
        """Computes the first (smallest t) intersection between a ray and the scene.

        A root counts when ray.start <= t <= ray.end.  When two roots are
        equally close, the sphere listed first wins.
        """
        closest_t = np.inf
        closest_sphere = None
        for sphere in self.spheres:
            for t in sphere.intersect(ray):
                if ray.start <= t <= ray.end and t < closest_t:
                    closest_t = t
                    closest_sphere = sphere

        if closest_sphere is None:
            return no_hit

        point = ray.at(closest_t)
        normal = closest_sphere.normal_at(point)
        return Hit(closest_t, point, normal, closest_sphere)

    def trace_ray(self, origin, direction, t_min=0., t_max=np.inf):
        """Color seen along a ray, plus the hit that produced it (no_hit on a miss)."""
        hit = self.intersect(Ray(origin, direction, t_min, t_max))
        if not hit:
            return self.bg_color.copy(), no_hit
        intensity = compute_lighting(hit.point, hit.normal, self.lights)
        return hit.sphere.color * intensity, hit


def clamp(color):
    """Clamp each channel of a color to the displayable range [0, 255]."""
    return np.clip(vec(color), 0., 255.)


class Renderer:

    def __init__(self, scene, camera, surface, verbose=False):
        """Bind a scene and camera to a drawable surface.

        The surface's pixel buffer is acquired once, here; it is presented
        once at the end of every render().
        """
        self.scene = scene
        self.camera = camera
        self.surface = surface
        self.verbose = verbose
        self.width = surface.width
        self.height = surface.height
        self.buffer = surface.acquire_buffer()

    def device_coords(self, x, y):
        """Centered (y up) pixel coordinates to top-left origin, y down ones."""
        return self.width // 2 + x, self.height // 2 - y - 1

    def paint_pixel(self, x, y, color):
        """Write an RGB color, fully opaque, at centered coordinates (x, y).

        Pixels that land outside the buffer are dropped.
        """
        dx, dy = self.device_coords(x, y)
        if dx < 0 or dx >= self.width or dy < 0 or dy >= self.height:
            return

        offset = 4 * dx + self.buffer.pitch * dy
        self.buffer.data[offset:offset + 3] = np.rint(color[:3]).astype(np.uint8)
        self.buffer.data[offset + 3] = 255

    def sweep_range(self):
        # The canvas height bounds both axes, so on a non-square canvas the
        # extra columns are never traced or are dropped by paint_pixel.
        half = self.height // 2
        return range(-half, self.height - half), range(half - self.height, half)

    def render(self):
        """Trace every pixel, then present the buffer once."""
        xs, ys = self.sweep_range()
        origin = self.camera.eye
        for row, y in enumerate(reversed(ys)):
            if self.verbose:
                print(f"rendering row {row + 1}/{len(ys)}...")
            for x in xs:
                direction = self.camera.canvas_to_viewport((x, y), self.width, self.height)
                color, _ = self.scene.trace_ray(origin, direction, 0., np.inf)
                self.paint_pixel(x, y, clamp(color))
        return self.surface.present(self.buffer)


def render_image(scene, camera, width, height, output_path=None, verbose=False):
    """
    render a ray traced image onto an off-screen canvas.

    Returns the presented ImLite.Image, RGBA uint8 of shape (height, width, 4).
    """
    canvas = Canvas(width, height, output_path=output_path)
    return Renderer(scene, camera, canvas, verbose=verbose).render()


def _light_from_config(light_cfg):
    try:
        kind = LightKind(str(light_cfg['type']).lower())
    except KeyError as e:
        raise InvalidScene("light is missing its 'type'") from e
    except ValueError as e:
        raise InvalidScene(f"unknown light type: {light_cfg['type']!r}") from e

    intensity = light_cfg.get('intensity', 0.)
    if kind is LightKind.AMBIENT:
        return AmbientLight(intensity)
    if kind is LightKind.POINT:
        pos = light_cfg.get('pos', light_cfg.get('position'))
        if pos is None:
            raise InvalidScene("point light needs a 'pos'")
        return PointLight(intensity, pos)
    pos = light_cfg.get('pos', light_cfg.get('direction'))
    if pos is None:
        raise InvalidScene("directional light needs a 'pos' (its direction)")
    return DirectionalLight(intensity, pos)


def scene_from_config(config):
    """Build (scene, camera) from a renderer configuration mapping.

    Recognized keys: viewport {sizeX, sizeY, distance}, spheres [{center,
    radius, color}], lights [{type, intensity, pos}], and optionally origin
    and backgroundColor.
    """
    try:
        viewport_cfg = config['viewport']
        viewport = Viewport(viewport_cfg['sizeX'], viewport_cfg['sizeY'], viewport_cfg['distance'])
        spheres = [Sphere(s['center'], s['radius'], s['color']) for s in config.get('spheres', [])]
        lights = [_light_from_config(light_cfg) for light_cfg in config.get('lights', [])]
        camera = Camera(config.get('origin', [0, 0, 0]), viewport)
    except RayTracerError:
        raise
    except KeyError as e:
        raise InvalidScene(f"missing configuration key {e}") from e
    except (TypeError, ValueError, AttributeError) as e:
        raise InvalidScene(f"malformed configuration: {e}") from e

    scene = Scene(spheres, lights, config.get('backgroundColor', BACKGROUND_COLOR))
    return scene, camera
