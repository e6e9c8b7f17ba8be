from wwmp.main import main

main()
