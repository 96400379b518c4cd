"""spotify-nvim - control Spotify playback and search from Neovim."""

__version__ = "0.1.0"
