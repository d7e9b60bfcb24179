from depkit.cli import main

main()
