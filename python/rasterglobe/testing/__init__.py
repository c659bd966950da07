from .geotiff import make_test_raster, write_geotiff
