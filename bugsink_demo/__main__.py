from .web_server import main

main()
