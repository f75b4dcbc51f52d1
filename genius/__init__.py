"Genius Classes backend"
