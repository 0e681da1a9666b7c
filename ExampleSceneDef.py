import tracer
from geometry import Sphere
from utils import *

class ExampleSceneDef(object):
    def __init__(self, camera, scene):
        self.camera = camera;
        self.scene = scene;

    def render(self, output_path=None, output_shape=None, verbose=False):
        if(output_shape is None):
            output_shape=[128,128];
        im = tracer.render_image(self.scene, self.camera, output_shape[1], output_shape[0],
                                 output_path=output_path, verbose=verbose);
        return im;


def SingleSphereExample(intensity=1.0):
    # red sphere, ambient light only
    scene = tracer.Scene([
        Sphere(vec([0, 0, 3]), 1, vec([255, 0, 0])),
    ], [
        tracer.AmbientLight(intensity),
    ])
    camera = tracer.Camera(vec([0, 0, 0]), tracer.Viewport(1, 1, 1))
    return ExampleSceneDef(camera=camera, scene=scene);


def ThreeSpheresExample():
    scene = tracer.Scene([
        Sphere(vec([0, -1, 3]), 1, vec([255, 0, 0])),
        Sphere(vec([2, 0, 4]), 1, vec([0, 0, 255])),
        Sphere(vec([-2, 0, 4]), 1, vec([0, 255, 0])),
        Sphere(vec([0, -5001, 0]), 5000, vec([255, 255, 0])),
    ], [
        tracer.AmbientLight(0.2),
        tracer.PointLight(0.6, vec([2, 1, 0])),
        tracer.DirectionalLight(0.2, vec([1, 4, 4])),
    ])
    camera = tracer.Camera(vec([0, 0, 0]), tracer.Viewport(1, 1, 1))
    return ExampleSceneDef(camera=camera, scene=scene);


def EmptySceneExample(bg_color=(255, 255, 255)):
    scene = tracer.Scene([], [tracer.AmbientLight(1.0)], bg_color=bg_color)
    camera = tracer.Camera()
    return ExampleSceneDef(camera=camera, scene=scene);
