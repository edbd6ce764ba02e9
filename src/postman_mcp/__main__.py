from postman_mcp.cli import main

main()
