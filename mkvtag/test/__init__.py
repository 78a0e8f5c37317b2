"Unit tests for mkvtag.  Run 'python3 -m unittest -v' from the top directory."
