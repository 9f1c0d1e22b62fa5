import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from authtemplate import (
    classes,
    compiler,
    encoding,
    errors,
    functions,
    interfaces,
    operations,
    parsing,
    resolution,
    tools,
)
