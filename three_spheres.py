from utils import *
from tracer import *
from cli import render

scene = Scene([
    Sphere(vec([0, -1, 3]), 1, vec([255, 0, 0])),
    Sphere(vec([2, 0, 4]), 1, vec([0, 0, 255])),
    Sphere(vec([-2, 0, 4]), 1, vec([0, 255, 0])),
    # big yellow sphere standing in for the floor
    Sphere(vec([0, -5001, 0]), 5000, vec([255, 255, 0])),
], [
    AmbientLight(0.2),
    PointLight(0.6, vec([2, 1, 0])),
    DirectionalLight(0.2, vec([1, 4, 4])),
])

camera = Camera(vec([0, 0, 0]), Viewport(1, 1, 1))

render(camera=camera, scene=scene)
