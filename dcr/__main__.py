from dcr.cli.app import main

main()
