from gpucrate.cli import cli_main

cli_main()
