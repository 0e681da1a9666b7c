from PIL import Image as PIM
import numpy as np

import matplotlib
import matplotlib.pyplot as plt

def aget_ipython():
    try:
        import IPython
        return IPython;
    except ImportError:
        return None;

def runningInNotebook():
    try:
        ipyth = aget_ipython();
        if(ipyth is None):
            return False;
        if(ipyth.__class__.__name__ == 'module'):
            ipyth = ipyth.get_ipython();
        shell = ipyth.__class__.__name__;

        if shell == 'ZMQInteractiveShell':
            return True   # Jupyter notebook or qtconsole
        else:
            return False  # Terminal IPython or plain interpreter
    except NameError:
        return False      # Probably standard Python interpreter


_ISNOTEBOOK = False;
if(runningInNotebook()):
    _ISNOTEBOOK = True;

def is_notebook():
    return _ISNOTEBOOK;

class Image(object):
    """Image
    """

    def __init__(self, path=None, pixels=None, **kwargs):
        # You can do Image(pixels) or Image(path)
        self._pixels = None;
        self.file_path = None;
        if (isinstance(path, np.ndarray) and (pixels is None)):
            # if the path looks like pixels and pixels are undefined, treat the path as pixels
            self.pixels = path;
        else:
            self.pixels = pixels;
            self.file_path = path;
            if(self.file_path is not None and pixels is None):
                self.loadImageData(self.file_path);

    @property
    def pixels(self):
        return self._pixels;

    @pixels.setter
    def pixels(self, data):
        self._pixels = data;

    @property
    def dtype(self):
        return self.pixels.dtype;

    @property
    def _is_int(self):
        return (self.dtype.kind in 'iu');

    @property
    def ipixels(self):
        if (self._is_int):
            return self.pixels;
        else:
            return (self.pixels * 255).astype(np.uint8);

    @property
    def shape(self):
        return np.asarray(self.pixels.shape)[:];

    @property
    def width(self):
        return self.shape[1];

    @property
    def height(self):
        return self.shape[0];

    def getPixel(self, x, y):
        """Pixel at device column x, row y (top-left origin)."""
        return tuple(int(c) for c in self.pixels[y, x]);

    def loadImageData(self, path=None):
        if (path):
            self.file_path = path;
        if (self.file_path):
            with PIM.open(fp=self.file_path) as pim:
                self._pixels = np.array(pim);

    def PIL(self):
        return PIM.fromarray(np.uint8(self.ipixels));

    def show(self, title=None, new_figure=True, **kwargs):
        if (is_notebook()):
            Image.Show(self, new_figure=new_figure, title=title, **kwargs);
        else:
            self.PIL().show();

    @staticmethod
    def Show(im, title=None, new_figure=True, axis=None, **kwargs):
        if (isinstance(im, Image)):
            imdata = im.pixels;
        else:
            imdata = im;

        if (imdata.dtype == np.int64 or imdata.dtype == np.int32):
            imdata = imdata.astype(np.uint8)

        if (new_figure):
            if (title is not None):
                plt.figure(num=title);
            else:
                plt.figure();
        if (len(imdata.shape) < 3):
            nrm = matplotlib.colors.Normalize(vmin=0, vmax=255);
            if (axis is not None):
                axis.imshow(imdata, cmap='gray', norm=nrm, **kwargs);
            else:
                plt.imshow(imdata, cmap='gray', norm=nrm, **kwargs);
        else:
            if (axis is not None):
                axis.imshow(imdata, **kwargs);
            else:
                plt.imshow(imdata, **kwargs);
        plt.axis('off');
        if (title):
            plt.title(title);

    def writeToFile(self, output_path=None, **kwargs):
        self.PIL().save(output_path);


class PixelBuffer(object):
    """Flat RGBA byte buffer, row-major with a fixed row stride.

    Channel c of device pixel (x, y) lives at data[4 * x + pitch * y + c].
    """

    def __init__(self, width, height):
        self.width = int(width);
        self.height = int(height);
        self.pitch = self.width * 4;
        self.data = np.zeros(self.pitch * self.height, dtype=np.uint8);

    def as_array(self):
        """View of the buffer with shape (height, width, 4)."""
        return self.data.reshape((self.height, self.width, 4));

    def getPixel(self, x, y):
        offset = 4 * x + self.pitch * y;
        return tuple(int(c) for c in self.data[offset:offset + 4]);


class Canvas(object):
    """Drawable surface that a renderer paints into.

    The buffer starts out transparent black.  present() copies it into
    self.image and, if output_path is set, writes the image to disk.
    """

    def __init__(self, width, height, output_path=None):
        if (width < 1 or height < 1):
            raise ValueError("canvas needs a positive width and height, got {}x{}".format(width, height));
        self.width = int(width);
        self.height = int(height);
        self.output_path = output_path;
        self.image = None;
        self.present_count = 0;

    def acquire_buffer(self):
        return PixelBuffer(self.width, self.height);

    def present(self, buffer):
        if (buffer.width != self.width or buffer.height != self.height):
            raise ValueError("buffer is {}x{} but canvas is {}x{}".format(
                buffer.width, buffer.height, self.width, self.height));
        self.image = Image(pixels=buffer.as_array().copy());
        self.present_count += 1;
        if (self.output_path is not None):
            self.image.writeToFile(self.output_path);
        return self.image;
