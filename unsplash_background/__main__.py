"""
__main__.py

This file adds support for running unsplash_background as a python module instead of invoking the
"unsplash-background" command line entrypoint.
"""


from unsplash_background.cli import main


if __name__ == "__main__":
    main()
